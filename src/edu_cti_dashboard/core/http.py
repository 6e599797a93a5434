from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.models import (
    CategoryAnalyticsResponse,
    DashboardResponse,
    DashboardStats,
    FilterOptions,
    IncidentDetail,
    IncidentListResponse,
    ThreatActorsResponse,
    TimelineAnalyticsResponse,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class UpstreamError(Exception):
    """The incident service could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class IncidentNotFound(UpstreamError):
    def __init__(self, incident_id: str):
        super().__init__(f"Incident not found: {incident_id}", status_code=404, retryable=False)
        self.incident_id = incident_id


class CTIApiClient:
    """
    Read-only client for the EduThreat-CTI REST API.

    Features:
    - Shared requests session
    - Retry with linear backoff on connection errors and 5xx responses
    - Responses parsed into pydantic models
    """

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        *,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
        max_retries: int = config.HTTP_MAX_RETRIES,
        backoff_base: float = config.HTTP_BACKOFF_BASE,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET `endpoint` and return the decoded JSON body.

        Raises UpstreamError once retries are exhausted or on a 4xx.
        """
        url = f"{self.base_url}{endpoint}"
        retries = 0

        while True:
            try:
                resp = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                retries += 1
                if retries > self.max_retries:
                    logger.error(f"API request failed after {retries} attempts: {url}: {e}")
                    raise UpstreamError(f"API unreachable: {e}") from e
                logger.warning(f"API request error ({e}), retry {retries}/{self.max_retries}: {url}")
                time.sleep(self.backoff_base * retries)
                continue

            if resp.status_code >= 500:
                retries += 1
                if retries > self.max_retries:
                    logger.error(f"API error {resp.status_code} after {retries} attempts: {url}")
                    raise UpstreamError(
                        f"API Error: {resp.status_code} {resp.reason}",
                        status_code=resp.status_code,
                    )
                logger.warning(f"API returned {resp.status_code}, retry {retries}/{self.max_retries}: {url}")
                time.sleep(self.backoff_base * retries)
                continue

            if resp.status_code >= 400:
                raise UpstreamError(
                    f"API Error: {resp.status_code} {resp.reason}",
                    status_code=resp.status_code,
                    retryable=False,
                )

            try:
                return resp.json()
            except ValueError as e:
                raise UpstreamError(f"API returned invalid JSON from {url}") from e

    # ============================================================
    # Incidents
    # ============================================================

    def get_incidents(self, params: Optional[Dict[str, Any]] = None) -> IncidentListResponse:
        """List incidents; `params` usually comes from QueryDescriptor.to_params()."""
        return _parse(IncidentListResponse, self._get("/api/incidents", params=params))

    def get_incident(self, incident_id: str) -> IncidentDetail:
        try:
            data = self._get(f"/api/incidents/{incident_id}")
        except UpstreamError as e:
            if e.status_code == 404:
                raise IncidentNotFound(incident_id) from e
            raise
        return _parse(IncidentDetail, data)

    def get_filters(self) -> FilterOptions:
        return _parse(FilterOptions, self._get("/api/filters"))

    # ============================================================
    # Dashboard & Analytics
    # ============================================================

    def get_dashboard(self) -> DashboardResponse:
        return _parse(DashboardResponse, self._get("/api/dashboard"))

    def get_stats(self) -> DashboardStats:
        return _parse(DashboardStats, self._get("/api/stats"))

    def get_country_analytics(self, limit: int = 20) -> CategoryAnalyticsResponse:
        return _parse(CategoryAnalyticsResponse, self._get("/api/analytics/countries", {"limit": limit}))

    def get_attack_type_analytics(self, limit: int = 15) -> CategoryAnalyticsResponse:
        return _parse(CategoryAnalyticsResponse, self._get("/api/analytics/attack-types", {"limit": limit}))

    def get_ransomware_analytics(self, limit: int = 15) -> CategoryAnalyticsResponse:
        return _parse(CategoryAnalyticsResponse, self._get("/api/analytics/ransomware", {"limit": limit}))

    def get_timeline_analytics(self, months: int = config.TIMELINE_MONTHS) -> TimelineAnalyticsResponse:
        return _parse(TimelineAnalyticsResponse, self._get("/api/analytics/timeline", {"months": months}))

    def get_threat_actors(self, limit: int = 20) -> ThreatActorsResponse:
        return _parse(ThreatActorsResponse, self._get("/api/analytics/threat-actors", {"limit": limit}))

    def close(self) -> None:
        self.session.close()


def build_api_client(base_url: Optional[str] = None) -> CTIApiClient:
    return CTIApiClient(base_url or config.API_BASE_URL)


def _parse(model: Type[M], data: Any) -> M:
    """Validate an API payload; malformed payloads are upstream errors."""
    if not isinstance(data, dict):
        raise UpstreamError(f"Unexpected {model.__name__} payload: {type(data).__name__}", retryable=False)
    try:
        return model(**data)
    except ValidationError as e:
        logger.error(f"Invalid {model.__name__} payload: {e}")
        raise UpstreamError(f"Invalid {model.__name__} payload", retryable=False) from e
