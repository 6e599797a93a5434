"""Tests for page view assembly."""

from edu_cti_dashboard.analytics.filters import FilterSet, build_query
from edu_cti_dashboard.analytics.taxonomy import StyleTag
from edu_cti_dashboard.api.models import ViewStatus
from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.countries import UNKNOWN_FLAG
from edu_cti_dashboard.core.http import IncidentNotFound, UpstreamError
from edu_cti_dashboard.core.models import (
    CategoryAnalyticsResponse,
    CountByCategory,
    DashboardResponse,
    DashboardStats,
    FilterOptions,
    IncidentDetail,
    IncidentListResponse,
    IncidentSummary,
    PaginationMeta,
    RecentIncident,
    ThreatActorsResponse,
    ThreatActorSummary,
    TimelineAnalyticsResponse,
    TimeSeriesPoint,
)

US_FLAG = "\U0001F1FA\U0001F1F8"
GB_FLAG = "\U0001F1EC\U0001F1E7"


def _stats(total=4, ransomware=1, breach=1, enriched=2):
    return DashboardStats(
        total_incidents=total,
        enriched_incidents=enriched,
        unenriched_incidents=total - enriched,
        incidents_with_ransomware=ransomware,
        incidents_with_data_breach=breach,
        countries_affected=2,
        unique_threat_actors=1,
        unique_ransomware_families=1,
        last_updated="2024-04-01T00:00:00Z",
    )


def _categories(*entries, **extra):
    data = [CountByCategory(category=c, count=n, percentage=p, **extra) for c, n, p in entries]
    return CategoryAnalyticsResponse(data=data, total=sum(e.count for e in data))


def _incident_list(records, total=None, page=1, per_page=20):
    total = len(records) if total is None else total
    return IncidentListResponse(
        incidents=[IncidentSummary(**r) for r in records],
        pagination=PaginationMeta(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=(total + per_page - 1) // per_page,
            has_next=False,
            has_prev=page > 1,
        ),
    )


class TestIncidentsView:
    """Test the incident list view."""

    def test_rows_and_pagination(self, views, api_client, incident_records):
        api_client.get_incidents.return_value = _incident_list(incident_records[:2], total=45, page=3)
        api_client.get_filters.return_value = FilterOptions(countries=["United States"])
        query = build_query(FilterSet(country="US"), page=3)

        view = views.incidents(query)

        api_client.get_incidents.assert_called_once_with(query.to_params())
        assert view.state.status == ViewStatus.OK
        assert view.active_filter_count == 1
        assert view.pagination.total_pages == 3
        assert (view.pagination.range_start, view.pagination.range_end) == (41, 45)
        assert view.filter_options.countries == ["United States"]

        first = view.incidents[0]
        assert first.flag_emoji == US_FLAG
        assert first.attack_label == "Ransomware"
        assert first.attack_style == StyleTag.DANGER
        assert first.status_style == StyleTag.SUCCESS

    def test_page_past_end_refetches_last_page(self, views, api_client, incident_records):
        """A page beyond the last one shows the last page's rows, not an empty window."""
        api_client.get_incidents.side_effect = [
            _incident_list([], total=45, page=9),
            _incident_list(incident_records[:2], total=45, page=3),
        ]
        api_client.get_filters.return_value = FilterOptions()

        view = views.incidents(build_query(page=9))

        assert api_client.get_incidents.call_count == 2
        assert api_client.get_incidents.call_args.args[0]["page"] == 3
        assert view.state.status == ViewStatus.OK
        assert len(view.incidents) == 2
        assert view.pagination.page == 3
        assert (view.pagination.range_start, view.pagination.range_end) == (41, 45)
        assert view.query["page"] == 3

    def test_uk_row_gets_british_flag(self, views, api_client):
        api_client.get_incidents.return_value = _incident_list(
            [{"incident_id": "inc-010", "university_name": "Oxford", "country": "UK"}],
        )
        api_client.get_filters.return_value = FilterOptions()

        row = views.incidents().incidents[0]

        assert row.flag_emoji == GB_FLAG

    def test_unclassified_row(self, views, api_client, incident_records):
        api_client.get_incidents.return_value = _incident_list([incident_records[4]])
        api_client.get_filters.return_value = FilterOptions()

        row = views.incidents().incidents[0]

        assert row.attack_label == "Unknown"
        assert row.attack_style == StyleTag.DEFAULT
        assert row.flag_emoji == UNKNOWN_FLAG

    def test_empty_result(self, views, api_client):
        api_client.get_incidents.return_value = _incident_list([])
        api_client.get_filters.return_value = FilterOptions()

        view = views.incidents(build_query(FilterSet(year=1999)))

        assert view.state.status == ViewStatus.EMPTY
        assert view.state.message == "No incidents match the current filters"
        assert view.pagination.display_pages == 1

    def test_upstream_failure_has_no_partial_data(self, views, api_client, incident_records):
        """A failure on the second fetch discards the first."""
        api_client.get_incidents.return_value = _incident_list(incident_records)
        api_client.get_filters.side_effect = UpstreamError("API Error: 503 Service Unavailable", status_code=503)

        view = views.incidents()

        assert view.state.status == ViewStatus.ERROR
        assert view.state.retryable is True
        assert view.incidents == []
        assert view.pagination is None


class TestIncidentDetailView:
    """Test the incident detail view."""

    def test_detail(self, views, api_client):
        api_client.get_incident.return_value = IncidentDetail(
            incident_id="inc-001",
            country="United States",
            attack_category="data_breach",
            incident_severity="critical",
            status="confirmed",
            llm_enriched=True,
        )

        view = views.incident_detail("inc-001")

        assert view.state.status == ViewStatus.OK
        assert view.flag_emoji == US_FLAG
        assert view.attack_label == "Data Breach"
        assert view.attack_style == StyleTag.INFO
        assert view.severity_label == "Critical"
        assert view.severity_style == StyleTag.DANGER
        assert view.enrichment_complete is True

    def test_not_found(self, views, api_client):
        api_client.get_incident.side_effect = IncidentNotFound("missing")

        view = views.incident_detail("missing")

        assert view.state.status == ViewStatus.ERROR
        assert view.state.status_code == 404
        assert view.state.retryable is False
        assert view.incident is None


class TestMapView:
    """Test the regional map view."""

    def test_regions(self, views, api_client):
        api_client.get_country_analytics.return_value = _categories(
            ("United States", 6, 50.0), ("Germany", 4, 33.3), ("Atlantis", 2, 16.7),
        )
        api_client.get_stats.return_value = _stats(total=12)

        view = views.map()

        assert view.mapped_incidents == 12
        assert [(r.region, r.total) for r in view.regions] == [
            ("North America", 6),
            ("Europe", 4),
            ("Other", 2),
        ]
        assert view.countries[0].flag_emoji == US_FLAG
        assert view.countries[2].flag_emoji == UNKNOWN_FLAG

    def test_headline_numbers_from_stats(self, views, api_client):
        """Incidents without a country or beyond the top countries still count in the total."""
        api_client.get_country_analytics.return_value = _categories(("Germany", 3, 100.0))
        api_client.get_stats.return_value = _stats(total=10)

        view = views.map()

        assert view.total_incidents == 10
        assert view.countries_affected == 2
        assert view.mapped_incidents == 3

    def test_empty(self, views, api_client):
        api_client.get_country_analytics.return_value = _categories()

        assert views.map().state.status == ViewStatus.EMPTY


class TestThreatActorsView:
    """Test threat actor cards."""

    def test_cards(self, views, api_client):
        api_client.get_threat_actors.return_value = ThreatActorsResponse(
            threat_actors=[
                ThreatActorSummary(
                    name="LockBit",
                    incident_count=12,
                    countries_targeted=[f"Country {i}" for i in range(9)],
                    ransomware_families=["LockBit", "LockBit 3.0", "LockBit Green", "LockBit Black"],
                ),
                ThreatActorSummary(name="Akira", incident_count=3),
            ],
            total=2,
        )

        view = views.threat_actors()

        lockbit, akira = view.actors
        assert lockbit.activity_label == "High Activity"
        assert len(lockbit.countries) == 6
        assert lockbit.countries_remaining == 3
        assert lockbit.ransomware_families == ["LockBit", "LockBit 3.0", "LockBit Green"]
        assert lockbit.families_remaining == 1
        assert akira.activity_label == "Low"
        assert akira.activity_style == StyleTag.CAUTION

    def test_empty(self, views, api_client):
        api_client.get_threat_actors.return_value = ThreatActorsResponse(threat_actors=[], total=0)

        assert views.threat_actors().state.status == ViewStatus.EMPTY


class TestAttacksView:
    """Test the attacks page grouping."""

    def test_groups_and_families(self, views, api_client):
        api_client.get_attack_type_analytics.return_value = _categories(
            ("ransomware", 5, 50.0), ("bec_fraud", 2, 20.0), ("phishing", 2, 20.0), ("ddos", 1, 10.0),
        )
        api_client.get_ransomware_analytics.return_value = _categories(
            ("lockbit", 6, 60.0), ("akira", 3, 30.0), ("obscure_gang", 1, 10.0),
        )

        view = views.attacks()

        assert view.total_incidents == 10
        assert [(g.group, g.total) for g in view.groups] == [
            ("ransomware", 5),
            ("phishing", 4),
            ("other", 1),
        ]
        lockbit, akira, obscure = view.ransomware_families
        assert (lockbit.label, lockbit.color, lockbit.intensity) == ("Lockbit", "red", StyleTag.DANGER)
        assert akira.intensity == StyleTag.DANGER
        assert (obscure.color, obscure.intensity) == ("gray", StyleTag.WARNING)

    def test_empty_groups_present(self, views, api_client):
        api_client.get_attack_type_analytics.return_value = _categories(("ransomware", 1, 100.0))
        api_client.get_ransomware_analytics.return_value = _categories()

        view = views.attacks()

        assert [(g.group, g.total) for g in view.groups] == [("ransomware", 1), ("phishing", 0), ("other", 0)]


class TestRansomwareView:
    """Test the ransomware page."""

    def test_families_and_recent(self, views, api_client, incident_records):
        api_client.get_ransomware_analytics.return_value = _categories(
            ("lockbit", 6, 60.0), ("akira", 3, 30.0), ("obscure_gang", 1, 10.0),
        )
        api_client.get_incidents.return_value = _incident_list([incident_records[0], incident_records[2]])

        view = views.ransomware()

        api_client.get_ransomware_analytics.assert_called_once_with(limit=config.RANSOMWARE_FAMILY_LIMIT)
        params = api_client.get_incidents.call_args.args[0]
        assert params["attack_category"] == "ransomware"
        assert params["per_page"] == config.RECENT_INCIDENTS_LIMIT

        assert view.state.status == ViewStatus.OK
        assert view.total_incidents == 10
        assert view.top_family.label == "Lockbit"
        assert view.top_family.color == "red"
        assert [f.category for f in view.families] == ["lockbit", "akira", "obscure_gang"]
        assert [r.incident_id for r in view.recent_incidents] == ["inc-001", "inc-003"]

    def test_empty_skips_incident_fetch(self, views, api_client):
        api_client.get_ransomware_analytics.return_value = _categories()

        view = views.ransomware()

        assert view.state.status == ViewStatus.EMPTY
        assert view.top_family is None
        api_client.get_incidents.assert_not_called()

    def test_incident_fetch_failure(self, views, api_client):
        api_client.get_ransomware_analytics.return_value = _categories(("lockbit", 1, 100.0))
        api_client.get_incidents.side_effect = UpstreamError("API unreachable")

        view = views.ransomware()

        assert view.state.status == ViewStatus.ERROR
        assert view.families == []


class TestAnalyticsView:
    """Test the analytics view."""

    def test_rates_and_charts(self, views, api_client):
        api_client.get_stats.return_value = _stats(total=4, ransomware=1, breach=2, enriched=3)
        api_client.get_country_analytics.return_value = _categories(("United States", 4, 100.0))
        api_client.get_attack_type_analytics.return_value = _categories(("ransomware", 1, 100.0))
        api_client.get_ransomware_analytics.return_value = _categories(("LockBit", 1, 100.0))
        api_client.get_timeline_analytics.return_value = TimelineAnalyticsResponse(
            data=[TimeSeriesPoint(date="2024-01", count=4)], total=4,
        )

        view = views.analytics()

        assert view.rates.ransomware_rate == 25.0
        assert view.rates.data_breach_rate == 50.0
        assert view.rates.enrichment_coverage == 75.0
        assert view.incidents_by_attack_type[0].style == StyleTag.DANGER
        assert view.incidents_by_country[0].flag_emoji == US_FLAG

    def test_timeline_gaps_filled(self, views, api_client):
        """Months the API leaves out of its grouped series come back with count 0."""
        api_client.get_stats.return_value = _stats()
        api_client.get_country_analytics.return_value = _categories()
        api_client.get_attack_type_analytics.return_value = _categories()
        api_client.get_ransomware_analytics.return_value = _categories()
        api_client.get_timeline_analytics.return_value = TimelineAnalyticsResponse(
            data=[TimeSeriesPoint(date="2024-01", count=3), TimeSeriesPoint(date="2024-03", count=1)],
            total=4,
        )

        series = views.analytics().incidents_over_time

        assert len(series) == config.TIMELINE_MONTHS
        assert [(p.date, p.count) for p in series[-3:]] == [
            ("2024-01", 3),
            ("2024-02", 0),
            ("2024-03", 1),
        ]

    def test_empty_skips_chart_fetches(self, views, api_client):
        api_client.get_stats.return_value = _stats(total=0, ransomware=0, breach=0, enriched=0)

        view = views.analytics()

        assert view.state.status == ViewStatus.EMPTY
        api_client.get_country_analytics.assert_not_called()


class TestDashboardView:
    """Test the landing dashboard."""

    def test_dashboard(self, views, api_client):
        api_client.get_dashboard.return_value = DashboardResponse(
            stats=_stats(),
            incidents_by_country=_categories(("United States", 3, 75.0), ("Canada", 1, 25.0)).data,
            incidents_by_attack_type=_categories(("phishing", 4, 100.0)).data,
            incidents_by_ransomware=[],
            incidents_over_time=[
                TimeSeriesPoint(date="2023-12", count=2),
                TimeSeriesPoint(date="2024-02", count=2),
            ],
            recent_incidents=[RecentIncident(incident_id="inc-001", university_name="State University", country="US")],
        )

        view = views.dashboard()

        assert view.state.status == ViewStatus.OK
        assert view.rates.ransomware_rate == 25.0
        assert view.incidents_by_attack_type[0].label == "Phishing"
        assert view.recent_incidents[0].flag_emoji == US_FLAG
        assert view.recent_incidents[0].status_style is None
        assert [(p.date, p.count) for p in view.incidents_over_time[-3:]] == [
            ("2023-12", 2),
            ("2024-01", 0),
            ("2024-02", 2),
        ]

    def test_upstream_error(self, views, api_client):
        api_client.get_dashboard.side_effect = UpstreamError("API unreachable")

        view = views.dashboard()

        assert view.state.status == ViewStatus.ERROR
        assert view.stats is None
        assert view.recent_incidents == []


class TestGenerations:
    """Test last-write-wins storage of views."""

    def test_current_view_stored(self, views, api_client):
        api_client.get_country_analytics.return_value = _categories(("Germany", 1, 100.0))
        api_client.get_stats.return_value = _stats()

        view = views.map()

        assert views.current("map") is view

    def test_superseded_view_not_stored(self, views, api_client):
        """A response for a request that was superseded mid-flight is not kept."""
        def fetch(limit):
            views.generations.issue("map")
            return _categories(("Germany", 1, 100.0))

        api_client.get_country_analytics.side_effect = fetch
        api_client.get_stats.return_value = _stats()

        view = views.map()

        assert view.state.status == ViewStatus.OK
        assert views.current("map") is None
