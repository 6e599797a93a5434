"""
View assembly: fetch from the EduThreat-CTI API, normalize, shape.

Every page view is built the same way:
1. tag the request with a new generation for its view key
2. fetch everything the view needs from the API
3. normalize labels, flags and styles and derive the aggregates
4. store the view only if no newer request for that key was issued

An UpstreamError anywhere in step 2 yields an error view with no partial
data. An empty result set yields an empty view, not an error.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from edu_cti_dashboard.analytics.aggregation import dashboard_rates, fill_month_gaps
from edu_cti_dashboard.analytics.filters import FilterSet, QueryDescriptor, build_query
from edu_cti_dashboard.analytics.regions import group_by_region, rank_regions, region_total
from edu_cti_dashboard.analytics.taxonomy import (
    ATTACK_GROUP_RULES,
    OTHER_ATTACK_GROUP,
    activity_level,
    attack_group,
    color_class_for,
    normalize_category,
    ransomware_color,
    share_intensity,
    truncate_display,
)
from edu_cti_dashboard.api.models import (
    AnalyticsView,
    AttackGroup,
    AttacksView,
    DashboardView,
    FamilyShare,
    IncidentDetailView,
    IncidentRow,
    IncidentsView,
    MapView,
    RansomwareView,
    StyledCategory,
    ThreatActorCard,
    ThreatActorsView,
    ViewState,
    ViewStatus,
)
from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.countries import get_flag
from edu_cti_dashboard.core.generations import RequestGenerations
from edu_cti_dashboard.core.http import CTIApiClient, UpstreamError
from edu_cti_dashboard.core.models import CountByCategory, ThreatActorSummary
from edu_cti_dashboard.core.pagination import paginate
from edu_cti_dashboard.core.utils import field_value

logger = logging.getLogger(__name__)

V = TypeVar("V", bound=BaseModel)

ATTACK_GROUP_ORDER = tuple(group for _, group in ATTACK_GROUP_RULES) + (OTHER_ATTACK_GROUP,)


# ============================================================
# Shaping helpers
# ============================================================

def error_state(error: UpstreamError) -> ViewState:
    return ViewState(
        status=ViewStatus.ERROR,
        message=str(error),
        retryable=error.retryable,
        status_code=error.status_code,
    )


def empty_state(message: str) -> ViewState:
    return ViewState(status=ViewStatus.EMPTY, message=message)


def styled_category(entry: CountByCategory, dimension: str = "attack_category") -> StyledCategory:
    return StyledCategory(
        **entry.model_dump(),
        label=normalize_category(entry.category),
        style=color_class_for(dimension, entry.category),
    )


def with_flag(entry: CountByCategory) -> CountByCategory:
    flag = get_flag(entry.country_code or entry.category, entry.flag_emoji)
    return entry.model_copy(update={"flag_emoji": flag})


def incident_row(record: Any) -> IncidentRow:
    """Table row for an IncidentSummary, RecentIncident or plain mapping."""
    category = field_value(record, "attack_category")
    country = field_value(record, "country")
    status = field_value(record, "status")
    return IncidentRow(
        incident_id=field_value(record, "incident_id"),
        university_name=field_value(record, "university_name") or "Unknown",
        country=country,
        flag_emoji=get_flag(field_value(record, "country_code") or country),
        incident_date=field_value(record, "incident_date"),
        title=field_value(record, "title"),
        attack_category=category,
        attack_label=normalize_category(category),
        attack_style=color_class_for("attack_category", category),
        ransomware_family=field_value(record, "ransomware_family"),
        threat_actor_name=field_value(record, "threat_actor_name"),
        status=status,
        status_style=color_class_for("status", status) if status else None,
        llm_enriched=bool(field_value(record, "llm_enriched")),
    )


def actor_card(actor: ThreatActorSummary) -> ThreatActorCard:
    label, style = activity_level(actor.incident_count)
    countries, countries_remaining = truncate_display(actor.countries_targeted, config.ACTOR_CARD_COUNTRIES)
    families, families_remaining = truncate_display(actor.ransomware_families, config.ACTOR_CARD_FAMILIES)
    return ThreatActorCard(
        name=actor.name,
        incident_count=actor.incident_count,
        activity_label=label,
        activity_style=style,
        countries=countries,
        countries_remaining=countries_remaining,
        ransomware_families=families,
        families_remaining=families_remaining,
        first_seen=actor.first_seen,
        last_seen=actor.last_seen,
    )


def family_share(entry: CountByCategory) -> FamilyShare:
    return FamilyShare(
        **entry.model_dump(),
        label=normalize_category(entry.category),
        color=ransomware_color(entry.category),
        intensity=share_intensity(entry.percentage),
    )


def group_attack_types(entries: List[CountByCategory]) -> List[AttackGroup]:
    """Attack categories bucketed into ransomware / phishing / other, always all three."""
    buckets: Dict[str, List[StyledCategory]] = {group: [] for group in ATTACK_GROUP_ORDER}
    for entry in entries:
        buckets[attack_group(entry.category)].append(styled_category(entry))
    return [
        AttackGroup(group=group, total=sum(c.count for c in categories), categories=categories)
        for group, categories in buckets.items()
    ]


# ============================================================
# View assembly
# ============================================================

class DashboardViews:
    """Builds page views from a CTIApiClient. Safe to share between threads."""

    def __init__(self, client: CTIApiClient, generations: Optional[RequestGenerations] = None):
        self.client = client
        self.generations = generations or RequestGenerations()

    def _assemble(self, view_key: str, view_cls: Type[V], build: Callable[[], V]) -> V:
        generation = self.generations.issue(view_key)
        try:
            view = build()
        except UpstreamError as e:
            logger.warning(f"Failed to build {view_key} view: {e}")
            view = view_cls(state=error_state(e))
        self.generations.apply(view_key, generation, view)
        return view

    def current(self, view_key: str) -> Optional[BaseModel]:
        """Latest view accepted for `view_key`, if any."""
        return self.generations.result(view_key)

    # ---- Incidents ----

    def incidents(self, query: Optional[QueryDescriptor] = None) -> IncidentsView:
        query = query or build_query()

        def build() -> IncidentsView:
            used = query
            response = self.client.get_incidents(used.to_params())
            upstream = response.pagination
            meta = paginate(upstream.total, upstream.page, upstream.per_page)
            if upstream.total and upstream.page > meta.page:
                logger.info(f"Page {upstream.page} is past the last page, fetching page {meta.page}")
                used = query.model_copy(update={"page": meta.page})
                response = self.client.get_incidents(used.to_params())
                upstream = response.pagination
                meta = paginate(upstream.total, meta.page, upstream.per_page)
            options = self.client.get_filters()
            view = IncidentsView(
                query=used.to_params(),
                active_filter_count=used.active_filter_count,
                incidents=[incident_row(i) for i in response.incidents],
                pagination=meta,
                filter_options=options,
            )
            if not upstream.total:
                message = "No incidents found" if query.is_default else "No incidents match the current filters"
                view.state = empty_state(message)
            return view

        return self._assemble("incidents", IncidentsView, build)

    def incident_detail(self, incident_id: str) -> IncidentDetailView:
        def build() -> IncidentDetailView:
            incident = self.client.get_incident(incident_id)
            severity = incident.incident_severity
            return IncidentDetailView(
                incident=incident,
                flag_emoji=get_flag(incident.country_code or incident.country),
                attack_label=normalize_category(incident.attack_category),
                attack_style=color_class_for("attack_category", incident.attack_category),
                severity_label=normalize_category(severity) if severity else None,
                severity_style=color_class_for("severity", severity) if severity else None,
                status_style=color_class_for("status", incident.status),
                enrichment_complete=incident.enrichment_complete,
            )

        return self._assemble(f"incident:{incident_id}", IncidentDetailView, build)

    # ---- Map ----

    def map(self) -> MapView:
        def build() -> MapView:
            response = self.client.get_country_analytics(limit=config.MAP_COUNTRY_LIMIT)
            countries = [with_flag(entry) for entry in response.data]
            if not countries:
                return MapView(state=empty_state("No incidents with a known country"))
            stats = self.client.get_stats()
            return MapView(
                total_incidents=stats.total_incidents,
                countries_affected=stats.countries_affected,
                mapped_incidents=region_total(countries),
                countries=countries,
                regions=rank_regions(group_by_region(countries)),
            )

        return self._assemble("map", MapView, build)

    # ---- Threat actors ----

    def threat_actors(self) -> ThreatActorsView:
        def build() -> ThreatActorsView:
            response = self.client.get_threat_actors(limit=config.THREAT_ACTOR_LIMIT)
            if not response.threat_actors:
                return ThreatActorsView(state=empty_state("No threat actors attributed yet"))
            return ThreatActorsView(
                actors=[actor_card(actor) for actor in response.threat_actors],
                total=response.total,
            )

        return self._assemble("threat-actors", ThreatActorsView, build)

    # ---- Analytics ----

    def analytics(self) -> AnalyticsView:
        def build() -> AnalyticsView:
            stats = self.client.get_stats()
            if not stats.total_incidents:
                return AnalyticsView(state=empty_state("No incidents collected yet"), stats=stats)
            countries = self.client.get_country_analytics(limit=config.DASHBOARD_COUNTRY_LIMIT)
            attack_types = self.client.get_attack_type_analytics(limit=config.ATTACKS_TYPE_LIMIT)
            ransomware = self.client.get_ransomware_analytics(limit=config.DASHBOARD_RANSOMWARE_LIMIT)
            timeline = self.client.get_timeline_analytics(months=config.TIMELINE_MONTHS)
            return AnalyticsView(
                stats=stats,
                rates=dashboard_rates(stats),
                incidents_by_country=[with_flag(entry) for entry in countries.data],
                incidents_by_attack_type=[styled_category(entry) for entry in attack_types.data],
                incidents_by_ransomware=ransomware.data,
                incidents_over_time=fill_month_gaps(timeline.data, window_months=config.TIMELINE_MONTHS),
            )

        return self._assemble("analytics", AnalyticsView, build)

    # ---- Attacks ----

    def attacks(self) -> AttacksView:
        def build() -> AttacksView:
            attack_types = self.client.get_attack_type_analytics(limit=config.ATTACKS_TYPE_LIMIT)
            ransomware = self.client.get_ransomware_analytics(limit=config.RANSOMWARE_FAMILY_LIMIT)
            if not attack_types.data and not ransomware.data:
                return AttacksView(state=empty_state("No classified attacks yet"))
            return AttacksView(
                total_incidents=attack_types.total,
                groups=group_attack_types(attack_types.data),
                ransomware_families=[family_share(entry) for entry in ransomware.data],
            )

        return self._assemble("attacks", AttacksView, build)

    # ---- Ransomware ----

    def ransomware(self) -> RansomwareView:
        def build() -> RansomwareView:
            analytics = self.client.get_ransomware_analytics(limit=config.RANSOMWARE_FAMILY_LIMIT)
            if not analytics.data:
                return RansomwareView(state=empty_state("No ransomware families identified yet"))
            recent_query = build_query(
                FilterSet(attack_category="ransomware"), per_page=config.RECENT_INCIDENTS_LIMIT,
            )
            recent = self.client.get_incidents(recent_query.to_params())
            families = [family_share(entry) for entry in analytics.data]
            return RansomwareView(
                total_incidents=analytics.total,
                top_family=families[0],
                families=families,
                recent_incidents=[incident_row(i) for i in recent.incidents],
            )

        return self._assemble("ransomware", RansomwareView, build)

    # ---- Landing dashboard ----

    def dashboard(self) -> DashboardView:
        def build() -> DashboardView:
            response = self.client.get_dashboard()
            view = DashboardView(
                stats=response.stats,
                rates=dashboard_rates(response.stats),
                incidents_by_country=[with_flag(entry) for entry in response.incidents_by_country],
                incidents_by_attack_type=[styled_category(entry) for entry in response.incidents_by_attack_type],
                incidents_by_ransomware=response.incidents_by_ransomware,
                incidents_over_time=fill_month_gaps(
                    response.incidents_over_time, window_months=config.TIMELINE_MONTHS,
                ),
                recent_incidents=[incident_row(i) for i in response.recent_incidents],
            )
            if not response.stats.total_incidents:
                view.state = empty_state("No incidents collected yet")
            return view

        return self._assemble("dashboard", DashboardView, build)
