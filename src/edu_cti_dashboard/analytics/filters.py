"""
Incident filter and query shaping.

A FilterSet holds the optional, independent filter dimensions. build_query()
combines it with a free-text search and a page window into an immutable
QueryDescriptor, which can be sent to the API (to_params) or evaluated
against records already in memory (matches).

Semantics:
- supplied dimensions are ANDed; an omitted dimension constrains nothing
- search is a case-insensitive substring match ORed over institution name,
  raw victim name, title and threat actor, then ANDed with the filters
- any filter or search change sends the view back to page 1
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.countries import normalize_country
from edu_cti_dashboard.core.pagination import clamp_page, clamp_per_page
from edu_cti_dashboard.core.utils import clean_text, field_value, parse_date

# Order used for query strings and the active-filter badge
FILTER_DIMENSIONS: Tuple[str, ...] = (
    "country",
    "attack_category",
    "ransomware_family",
    "threat_actor",
    "institution_type",
    "year",
    "enriched_only",
)

SEARCH_FIELDS: Tuple[str, ...] = (
    "university_name",
    "victim_raw_name",
    "title",
    "threat_actor_name",
)

SORT_COLUMNS: Tuple[str, ...] = ("incident_date", "ingested_at", "university_name", "country")
DEFAULT_SORT_BY = "incident_date"
DEFAULT_SORT_ORDER = "desc"


class FilterSet(BaseModel):
    """Optional filter dimensions; None means "not filtered"."""
    model_config = ConfigDict(frozen=True)

    country: Optional[str] = None
    attack_category: Optional[str] = None
    ransomware_family: Optional[str] = None
    threat_actor: Optional[str] = None
    institution_type: Optional[str] = None
    year: Optional[int] = None
    enriched_only: bool = False

    @field_validator(
        "country", "attack_category", "ransomware_family", "threat_actor", "institution_type",
        mode="before",
    )
    @classmethod
    def _blank_is_omitted(cls, value: Any) -> Optional[str]:
        return clean_text(value)

    @field_validator("year", mode="before")
    @classmethod
    def _year(cls, value: Any) -> Any:
        if value in (None, "", 0, "0"):
            return None
        return value

    @field_validator("enriched_only", mode="before")
    @classmethod
    def _enriched(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def active(self) -> Dict[str, Any]:
        """Supplied dimensions only, in FILTER_DIMENSIONS order."""
        values = {}
        for name in FILTER_DIMENSIONS:
            value = getattr(self, name)
            if value:
                values[name] = value
        return values


class QueryDescriptor(BaseModel):
    """Everything needed to fetch or evaluate one page of incidents."""
    model_config = ConfigDict(frozen=True)

    filters: FilterSet = FilterSet()
    search: Optional[str] = None
    page: int = 1
    per_page: int = config.DEFAULT_PER_PAGE
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER

    @property
    def active_filter_count(self) -> int:
        return len(self.filters.active())

    @property
    def is_default(self) -> bool:
        return not self.filters.active() and self.search is None and self.page == 1

    def to_params(self) -> Dict[str, Any]:
        """Query-string parameters for GET /api/incidents."""
        params: Dict[str, Any] = {"page": self.page, "per_page": self.per_page}
        for name, value in self.filters.active().items():
            params[name] = "true" if name == "enriched_only" else value
        if self.search:
            params["search"] = self.search
        params["sort_by"] = self.sort_by
        params["sort_order"] = self.sort_order
        return params

    def matches(self, record: Any) -> bool:
        """Evaluate the structured filters and search against one record."""
        return matches_filters(self.filters, record) and matches_search(self.search, record)


def build_query(
    filters: Optional[FilterSet] = None,
    search: Optional[str] = None,
    page: int = 1,
    per_page: int = config.DEFAULT_PER_PAGE,
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER,
) -> QueryDescriptor:
    """Assemble a QueryDescriptor; blank search and unknown sort options fall back to defaults."""
    sort_order = (sort_order or "").lower()
    return QueryDescriptor(
        filters=filters or FilterSet(),
        search=clean_text(search),
        page=max(1, int(page)),
        per_page=clamp_per_page(per_page),
        sort_by=sort_by if sort_by in SORT_COLUMNS else DEFAULT_SORT_BY,
        sort_order=sort_order if sort_order in ("asc", "desc") else DEFAULT_SORT_ORDER,
    )


def _same_text(expected: str, actual: Any) -> bool:
    actual = clean_text(actual)
    return actual is not None and actual.lower() == expected.lower()


def matches_filters(filters: FilterSet, record: Any) -> bool:
    if filters.country:
        wanted = normalize_country(filters.country)
        actual = normalize_country(clean_text(field_value(record, "country")))
        if actual is None or actual.lower() != (wanted or "").lower():
            return False

    if filters.attack_category and not _same_text(filters.attack_category, field_value(record, "attack_category")):
        return False

    if filters.ransomware_family and not _same_text(filters.ransomware_family, field_value(record, "ransomware_family")):
        return False

    if filters.threat_actor and not _same_text(filters.threat_actor, field_value(record, "threat_actor_name")):
        return False

    if filters.institution_type and not _same_text(filters.institution_type, field_value(record, "institution_type")):
        return False

    if filters.year:
        incident_date = parse_date(field_value(record, "incident_date"))
        if incident_date is None or incident_date.year != filters.year:
            return False

    if filters.enriched_only and not field_value(record, "llm_enriched"):
        return False

    return True


def matches_search(search: Optional[str], record: Any) -> bool:
    needle = clean_text(search)
    if not needle:
        return True
    needle = needle.lower()
    for name in SEARCH_FIELDS:
        value = field_value(record, name)
        if value and needle in str(value).lower():
            return True
    return False


class IncidentQueryState:
    """
    Mutable query state behind the incidents list.

    Every filter or search change resets the page to 1: an old page number
    means nothing against a differently filtered result set.
    """

    def __init__(self, per_page: int = config.DEFAULT_PER_PAGE) -> None:
        self.per_page = clamp_per_page(per_page)
        self.filters = FilterSet()
        self.search: Optional[str] = None
        self.page = 1

    def set_filter(self, name: str, value: Any) -> None:
        if name not in FILTER_DIMENSIONS:
            raise ValueError(f"Unknown filter: {name}")
        values = self.filters.model_dump()
        values[name] = value
        self.filters = FilterSet(**values)
        self.page = 1

    def set_search(self, search: Optional[str]) -> None:
        self.search = clean_text(search)
        self.page = 1

    def clear(self) -> None:
        """Back to the unfiltered default query."""
        self.filters = FilterSet()
        self.search = None
        self.page = 1

    def go_to_page(self, page: int, total_pages: int) -> int:
        self.page = clamp_page(page, total_pages)
        return self.page

    def next_page(self, total_pages: int) -> int:
        if self.page < total_pages:
            self.page += 1
        return self.page

    def prev_page(self) -> int:
        if self.page > 1:
            self.page -= 1
        return self.page

    def descriptor(self) -> QueryDescriptor:
        return build_query(self.filters, self.search, page=self.page, per_page=self.per_page)
