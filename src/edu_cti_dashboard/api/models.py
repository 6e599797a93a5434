"""
View models returned by the dashboard's own API.

Each view carries a ViewState. On error the data fields stay empty: a view
is either assembled from a complete fetch or not at all.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from edu_cti_dashboard.analytics.taxonomy import StyleTag
from edu_cti_dashboard.core.models import (
    CountByCategory,
    DashboardRates,
    DashboardStats,
    FilterOptions,
    IncidentDetail,
    PaginationMeta,
    RegionGroup,
    TimeSeriesPoint,
)


class ViewStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


class ViewState(BaseModel):
    status: ViewStatus = ViewStatus.OK
    message: Optional[str] = None
    retryable: bool = False
    # Upstream HTTP status behind an error, if any
    status_code: Optional[int] = None


class StyledCategory(CountByCategory):
    """A category count with its display label and style tag."""
    label: str
    style: StyleTag = StyleTag.DEFAULT


class IncidentRow(BaseModel):
    """One row of the incidents table or recent-incidents feed."""
    incident_id: str
    university_name: str
    country: Optional[str] = None
    flag_emoji: str
    incident_date: Optional[str] = None
    title: Optional[str] = None
    attack_category: Optional[str] = None
    attack_label: str
    attack_style: StyleTag
    ransomware_family: Optional[str] = None
    threat_actor_name: Optional[str] = None
    status: Optional[str] = None
    status_style: Optional[StyleTag] = None
    llm_enriched: bool = False


# ============================================================
# Page views
# ============================================================

class IncidentsView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    query: Dict[str, Any] = Field(default_factory=dict)
    active_filter_count: int = 0
    incidents: List[IncidentRow] = Field(default_factory=list)
    pagination: Optional[PaginationMeta] = None
    filter_options: Optional[FilterOptions] = None


class IncidentDetailView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    incident: Optional[IncidentDetail] = None
    flag_emoji: Optional[str] = None
    attack_label: Optional[str] = None
    attack_style: Optional[StyleTag] = None
    severity_label: Optional[str] = None
    severity_style: Optional[StyleTag] = None
    status_style: Optional[StyleTag] = None
    enrichment_complete: bool = False


class MapView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    total_incidents: int = 0
    countries_affected: int = 0
    # Sum over the countries shown; excludes incidents with no country
    mapped_incidents: int = 0
    countries: List[CountByCategory] = Field(default_factory=list)
    regions: List[RegionGroup] = Field(default_factory=list)


class ThreatActorCard(BaseModel):
    name: str
    incident_count: int
    activity_label: str
    activity_style: StyleTag
    countries: List[str] = Field(default_factory=list)
    countries_remaining: int = 0
    ransomware_families: List[str] = Field(default_factory=list)
    families_remaining: int = 0
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None


class ThreatActorsView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    actors: List[ThreatActorCard] = Field(default_factory=list)
    total: int = 0


class AnalyticsView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    stats: Optional[DashboardStats] = None
    rates: Optional[DashboardRates] = None
    incidents_by_country: List[CountByCategory] = Field(default_factory=list)
    incidents_by_attack_type: List[StyledCategory] = Field(default_factory=list)
    incidents_by_ransomware: List[CountByCategory] = Field(default_factory=list)
    incidents_over_time: List[TimeSeriesPoint] = Field(default_factory=list)


class AttackGroup(BaseModel):
    """Attack categories sharing one coarse group on the attacks page."""
    group: str
    total: int
    categories: List[StyledCategory] = Field(default_factory=list)


class FamilyShare(CountByCategory):
    label: str
    color: str
    intensity: StyleTag


class AttacksView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    total_incidents: int = 0
    groups: List[AttackGroup] = Field(default_factory=list)
    ransomware_families: List[FamilyShare] = Field(default_factory=list)


class RansomwareView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    total_incidents: int = 0
    top_family: Optional[FamilyShare] = None
    families: List[FamilyShare] = Field(default_factory=list)
    recent_incidents: List[IncidentRow] = Field(default_factory=list)


class DashboardView(BaseModel):
    state: ViewState = Field(default_factory=ViewState)
    stats: Optional[DashboardStats] = None
    rates: Optional[DashboardRates] = None
    incidents_by_country: List[CountByCategory] = Field(default_factory=list)
    incidents_by_attack_type: List[StyledCategory] = Field(default_factory=list)
    incidents_by_ransomware: List[CountByCategory] = Field(default_factory=list)
    incidents_over_time: List[TimeSeriesPoint] = Field(default_factory=list)
    recent_incidents: List[IncidentRow] = Field(default_factory=list)
