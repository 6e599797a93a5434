"""
Pydantic models for EduThreat-CTI API payloads.

Mirrors the response shapes of the incident service. Every classification,
location and enrichment field is optional: unenriched incidents arrive with
most of them missing.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Pagination
# ============================================================

class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""
    page: int
    per_page: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
    # Inclusive 1-based range of rows on this page; (0, 0) when empty
    range_start: int = 0
    range_end: int = 0
    display_pages: int = 1


# ============================================================
# Incident
# ============================================================

class IncidentSource(BaseModel):
    """Source attribution for an incident."""
    source: str
    source_event_id: Optional[str] = None
    first_seen_at: str
    confidence: Optional[str] = None


class IncidentSummary(BaseModel):
    """Incident row as returned by the list endpoint."""
    incident_id: str
    university_name: str = "Unknown"
    victim_raw_name: Optional[str] = None
    institution_type: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    incident_date: Optional[str] = None
    date_precision: Optional[str] = None
    title: Optional[str] = None
    attack_type_hint: Optional[str] = None
    attack_category: Optional[str] = None
    ransomware_family: Optional[str] = None
    threat_actor_name: Optional[str] = None
    status: str = "suspected"
    source_confidence: str = "medium"
    llm_enriched: bool = False
    llm_enriched_at: Optional[str] = None
    ingested_at: Optional[str] = None
    sources: List[str] = []

    @field_validator("university_name", mode="before")
    @classmethod
    def _default_name(cls, value: Any) -> Any:
        return value or "Unknown"

    @field_validator("status", "source_confidence", mode="before")
    @classmethod
    def _default_labels(cls, value: Any, info) -> Any:
        if value:
            return value
        return "suspected" if info.field_name == "status" else "medium"

    @field_validator("sources", mode="before")
    @classmethod
    def _source_names(cls, value: Any) -> Any:
        if not value:
            return []
        names = []
        for item in value:
            name = item.get("source") if isinstance(item, dict) else item
            if name and name not in names:
                names.append(name)
        return names


class TimelineEvent(BaseModel):
    """A single event in the incident timeline."""
    date: Optional[str] = None
    date_precision: Optional[str] = None
    event_description: Optional[str] = None
    event_type: Optional[str] = None
    actor_attribution: Optional[str] = None
    indicators: Optional[List[str]] = None


class MITRETechnique(BaseModel):
    """A MITRE ATT&CK technique."""
    technique_id: Optional[str] = None
    technique_name: Optional[str] = None
    tactic: Optional[str] = None
    description: Optional[str] = None
    sub_techniques: Optional[List[str]] = None


class AttackDynamics(BaseModel):
    attack_vector: Optional[str] = None
    attack_chain: Optional[List[str]] = None
    ransomware_family: Optional[str] = None
    data_exfiltration: Optional[bool] = None
    encryption_impact: Optional[str] = None
    ransom_demanded: Optional[bool] = None
    ransom_amount: Optional[float] = None
    ransom_paid: Optional[bool] = None
    recovery_timeframe_days: Optional[float] = None
    business_impact: Optional[str] = None
    operational_impact: Optional[List[str]] = None


class DataImpact(BaseModel):
    data_breached: Optional[bool] = None
    data_exfiltrated: Optional[bool] = None
    data_categories: Optional[List[str]] = None
    records_affected_exact: Optional[int] = None
    records_affected_min: Optional[int] = None
    records_affected_max: Optional[int] = None
    pii_records_leaked: Optional[int] = None


class SystemImpact(BaseModel):
    systems_affected: Optional[List[str]] = None
    critical_systems_affected: Optional[bool] = None
    network_compromised: Optional[bool] = None
    email_system_affected: Optional[bool] = None
    student_portal_affected: Optional[bool] = None
    research_systems_affected: Optional[bool] = None


class UserImpact(BaseModel):
    students_affected: Optional[int] = None
    staff_affected: Optional[int] = None
    faculty_affected: Optional[int] = None
    alumni_affected: Optional[int] = None
    total_individuals_affected: Optional[int] = None


class FinancialImpact(BaseModel):
    estimated_total_cost_usd: Optional[float] = None
    ransom_cost_usd: Optional[float] = None
    recovery_cost_usd: Optional[float] = None
    legal_cost_usd: Optional[float] = None
    insurance_claim: Optional[bool] = None
    insurance_payout_usd: Optional[float] = None


class RegulatoryImpact(BaseModel):
    applicable_regulations: Optional[List[str]] = None
    breach_notification_required: Optional[bool] = None
    notification_sent: Optional[bool] = None
    fine_imposed: Optional[bool] = None
    fine_amount_usd: Optional[float] = None
    lawsuits_filed: Optional[bool] = None
    class_action_filed: Optional[bool] = None


class RecoveryMetrics(BaseModel):
    recovery_method: Optional[str] = None
    recovery_duration_days: Optional[float] = None
    law_enforcement_involved: Optional[bool] = None
    ir_firm_engaged: Optional[str] = None
    # Free text on some incidents, a list on others
    security_improvements: Optional[Any] = None


class TransparencyMetrics(BaseModel):
    public_disclosure: Optional[bool] = None
    public_disclosure_date: Optional[str] = None
    disclosure_delay_days: Optional[float] = None
    transparency_level: Optional[str] = None


class EducationRelevance(BaseModel):
    is_education_related: Optional[bool] = None
    education_confidence: Optional[float] = None


class IncidentDetail(IncidentSummary):
    """Full incident with enrichment sub-objects."""
    institution_size: Optional[str] = None
    discovery_date: Optional[str] = None
    source_published_date: Optional[str] = None

    subtitle: Optional[str] = None
    enriched_summary: Optional[str] = None
    initial_access_description: Optional[str] = None

    primary_url: Optional[str] = None
    all_urls: List[str] = []
    leak_site_url: Optional[str] = None

    incident_severity: Optional[str] = None
    threat_actor_category: Optional[str] = None
    threat_actor_motivation: Optional[str] = None

    timeline: Optional[List[TimelineEvent]] = None
    mitre_attack_techniques: Optional[List[MITRETechnique]] = None
    attack_dynamics: Optional[AttackDynamics] = None

    data_impact: Optional[DataImpact] = None
    system_impact: Optional[SystemImpact] = None
    user_impact: Optional[UserImpact] = None
    financial_impact: Optional[FinancialImpact] = None
    regulatory_impact: Optional[RegulatoryImpact] = None
    recovery_metrics: Optional[RecoveryMetrics] = None
    transparency_metrics: Optional[TransparencyMetrics] = None
    education_relevance: Optional[EducationRelevance] = None

    sources: List[IncidentSource] = []
    notes: Optional[str] = None

    @field_validator("all_urls", mode="before")
    @classmethod
    def _dedupe_urls(cls, value: Any) -> List[str]:
        """Accept a list or the pipeline's ';'-joined string, drop repeats."""
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(";")
        urls: List[str] = []
        for url in value:
            url = (url or "").strip()
            if url and url not in urls:
                urls.append(url)
        return urls

    @field_validator("sources", mode="before")
    @classmethod
    def _source_names(cls, value: Any) -> Any:
        if not value:
            return []
        return sorted(
            value,
            key=lambda s: (s.get("first_seen_at") if isinstance(s, dict) else getattr(s, "first_seen_at", "")) or "",
        )

    @property
    def enrichment_complete(self) -> bool:
        """Impact fields are only expected once the LLM pass has run."""
        return self.llm_enriched


class IncidentListResponse(BaseModel):
    """Response for incident list endpoint."""
    incidents: List[IncidentSummary]
    pagination: PaginationMeta


# ============================================================
# Statistics & Analytics
# ============================================================

class CountByCategory(BaseModel):
    """Count of incidents by a category."""
    category: str
    count: int
    percentage: float = 0.0
    country_code: Optional[str] = None
    flag_emoji: Optional[str] = None


class TimeSeriesPoint(BaseModel):
    """Incident count for one calendar month (YYYY-MM)."""
    date: str
    count: int


class CategoryAnalyticsResponse(BaseModel):
    data: List[CountByCategory]
    total: int


class TimelineAnalyticsResponse(BaseModel):
    data: List[TimeSeriesPoint]
    total: int


class DashboardStats(BaseModel):
    """Overall dashboard statistics."""
    total_incidents: int
    enriched_incidents: int
    unenriched_incidents: int
    incidents_with_ransomware: int
    incidents_with_data_breach: int
    countries_affected: int
    unique_threat_actors: int
    unique_ransomware_families: int
    last_updated: str


class DashboardRates(BaseModel):
    """
    Headline rates as a percentage of ALL incidents (basis="total"), unlike
    category percentages which are relative to records with a known value.
    """
    basis: str = "total"
    total_incidents: int
    ransomware_rate: float
    data_breach_rate: float
    enrichment_coverage: float


class ThreatActorSummary(BaseModel):
    """Per-actor rollup. List fields hold each value once, in first-seen order."""
    name: str
    incident_count: int
    countries_targeted: List[str] = []
    ransomware_families: List[str] = []
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None


class ThreatActorsResponse(BaseModel):
    threat_actors: List[ThreatActorSummary]
    total: int


class RecentIncident(BaseModel):
    """A recent incident for the dashboard feed."""
    incident_id: str
    university_name: str = "Unknown"
    country: Optional[str] = None
    attack_category: Optional[str] = None
    ransomware_family: Optional[str] = None
    incident_date: Optional[str] = None
    title: Optional[str] = None
    threat_actor_name: Optional[str] = None


class DashboardResponse(BaseModel):
    """Landing-page bundle."""
    stats: DashboardStats
    incidents_by_country: List[CountByCategory]
    incidents_by_attack_type: List[CountByCategory]
    incidents_by_ransomware: List[CountByCategory]
    incidents_over_time: List[TimeSeriesPoint]
    recent_incidents: List[RecentIncident]


class FilterOptions(BaseModel):
    """Valid values for each incident filter control."""
    countries: List[str] = Field(default_factory=list)
    attack_categories: List[str] = Field(default_factory=list)
    ransomware_families: List[str] = Field(default_factory=list)
    threat_actors: List[str] = Field(default_factory=list)
    institution_types: List[str] = Field(default_factory=list)
    years: List[int] = Field(default_factory=list)


# ============================================================
# Regions
# ============================================================

class RegionGroup(BaseModel):
    """Country aggregates of one region, as shown on a region card."""
    region: str
    total: int
    countries: List[CountByCategory]
    remaining: int = 0
