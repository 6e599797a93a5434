"""
Aggregate statistics over incident records.

Produces the same shapes the /api/analytics endpoints return, so charts can
be fed either from the API or from records already fetched.

Conventions:
- grouping is on the raw category value, never the display label
- null/blank values are left out of category groups and of the
  percentage denominator; they still count toward total incidents
- category percentages are relative to records with a known value unless
  `of_total=True`; headline rates (dashboard_rates) are always of total
- ordering is count descending, then raw category ascending
"""

import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.countries import UNKNOWN_FLAG, get_country_code, get_flag, normalize_country
from edu_cti_dashboard.core.models import (
    CountByCategory,
    DashboardRates,
    DashboardStats,
    FilterOptions,
    ThreatActorSummary,
    TimeSeriesPoint,
)
from edu_cti_dashboard.core.utils import (
    clean_text,
    field_value,
    month_key,
    month_window,
    now_utc_iso,
    parse_date,
    percentage,
    round_half_up,
)

logger = logging.getLogger(__name__)

_STEP = Decimal("0.1")
_HUNDRED = Decimal(100)


# ============================================================
# Percentages
# ============================================================

def share_percentages(counts: Sequence[int], denominator: int) -> List[float]:
    """
    One-decimal, round-half-up percentages of `denominator`.

    If rounding pushes the sum of a grouping over 100, 0.1 is taken back from
    the entries that gained most from rounding (later entries first on
    ties) until the sum is at most 100.
    """
    if denominator <= 0:
        return [0.0] * len(counts)

    exact = [Decimal(count) * _HUNDRED / Decimal(denominator) for count in counts]
    rounded = [round_half_up(value) for value in exact]

    excess = sum(rounded, Decimal(0)) - _HUNDRED
    if excess > 0:
        steps = int(excess / _STEP)
        by_gain = sorted(range(len(rounded)), key=lambda i: (rounded[i] - exact[i], i), reverse=True)
        for i in by_gain[:steps]:
            rounded[i] -= _STEP

    return [float(value) for value in rounded]


def _to_categories(
    counts: Dict[str, int],
    denominator: int,
    limit: Optional[int] = None,
) -> List[CountByCategory]:
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    percentages = share_percentages([count for _, count in ordered], denominator)
    result = [
        CountByCategory(category=category, count=count, percentage=pct)
        for (category, count), pct in zip(ordered, percentages)
    ]
    return result[:limit] if limit is not None else result


def _first_known(record: Any, names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = clean_text(field_value(record, name))
        if value is not None:
            return value
    return None


# ============================================================
# Category aggregates
# ============================================================

def aggregate_by_category(
    records: Iterable[Any],
    dimension: str,
    *,
    fallbacks: Sequence[str] = (),
    limit: Optional[int] = None,
    of_total: bool = False,
) -> List[CountByCategory]:
    """
    Count records per raw value of `dimension`.

    `fallbacks` are fields consulted in order when `dimension` is empty.
    Percentages are computed before `limit` truncates the list.
    """
    counts: Dict[str, int] = {}
    total = 0
    for record in records:
        total += 1
        category = _first_known(record, (dimension, *fallbacks))
        if category is None:
            continue
        counts[category] = counts.get(category, 0) + 1

    denominator = total if of_total else sum(counts.values())
    return _to_categories(counts, denominator, limit)


def aggregate_attack_types(records: Iterable[Any], limit: Optional[int] = None) -> List[CountByCategory]:
    """attack_category, falling back to the source's attack_type_hint."""
    return aggregate_by_category(records, "attack_category", fallbacks=("attack_type_hint",), limit=limit)


def is_ransomware(record: Any) -> bool:
    category = clean_text(field_value(record, "attack_category")) or ""
    return "ransomware" in category.lower()


def ransomware_family_of(record: Any) -> Optional[str]:
    """
    Family of a ransomware incident. Enrichment often records the gang
    under threat_actor_name only, so that is the fallback.
    """
    return _first_known(record, ("ransomware_family", "threat_actor_name"))


def aggregate_ransomware_families(records: Iterable[Any], limit: Optional[int] = None) -> List[CountByCategory]:
    counts: Dict[str, int] = {}
    for record in records:
        if not is_ransomware(record):
            continue
        family = ransomware_family_of(record)
        if family is None:
            continue
        counts[family] = counts.get(family, 0) + 1
    return _to_categories(counts, sum(counts.values()), limit)


def aggregate_by_country(records: Iterable[Any], limit: Optional[int] = None) -> List[CountByCategory]:
    """
    Count records per country, merging codes, aliases and names of the same
    country ("US", "USA", "United States"). Adds ISO code and flag.
    """
    counts: Dict[str, int] = {}
    for record in records:
        country = normalize_country(clean_text(field_value(record, "country")))
        if country is None:
            continue
        counts[country] = counts.get(country, 0) + 1

    result = _to_categories(counts, sum(counts.values()), limit)
    for entry in result:
        code = get_country_code(entry.category)
        entry.country_code = code
        entry.flag_emoji = get_flag(entry.category) if code else UNKNOWN_FLAG
    return result


# ============================================================
# Time series
# ============================================================

def time_series(
    records: Iterable[Any],
    bucket: str = "month",
    window_months: int = config.TIMELINE_MONTHS,
    end: Union[datetime.date, str, None] = None,
) -> List[TimeSeriesPoint]:
    """
    Monthly incident counts for the `window_months` months ending at `end`
    (default: the current UTC month). Months without incidents are present
    with count 0; incidents without a date or outside the window are skipped.
    """
    if bucket != "month":
        raise ValueError(f"Unsupported time bucket: {bucket}")

    if isinstance(end, str):
        end = parse_date(end)
    if end is None:
        end = datetime.datetime.now(datetime.timezone.utc).date()

    counts: Dict[str, int] = {key: 0 for key in month_window(end, window_months)}
    for record in records:
        day = parse_date(field_value(record, "incident_date"))
        if day is None:
            continue
        key = month_key(day)
        if key in counts:
            counts[key] += 1

    return [TimeSeriesPoint(date=key, count=count) for key, count in counts.items()]


def fill_month_gaps(
    points: Iterable[TimeSeriesPoint],
    window_months: int = config.TIMELINE_MONTHS,
    end: Union[datetime.date, str, None] = None,
) -> List[TimeSeriesPoint]:
    """
    Gap-free version of an upstream monthly series.

    The API groups by month and omits months with no incidents. Every month
    of the `window_months` window ending at `end` (default: the latest month
    in `points`, else the current UTC month) is returned, with count 0 where
    the input has no point. Points outside the window are dropped.
    """
    points = list(points)
    if isinstance(end, str):
        end = parse_date(end)
    if end is None:
        dates = [d for d in (parse_date(p.date) for p in points) if d is not None]
        end = max(dates) if dates else datetime.datetime.now(datetime.timezone.utc).date()

    counts: Dict[str, int] = {key: 0 for key in month_window(end, window_months)}
    for point in points:
        day = parse_date(point.date)
        if day is None:
            logger.debug(f"Skipping time series point with bad date: {point.date!r}")
            continue
        key = month_key(day)
        if key in counts:
            counts[key] += point.count

    return [TimeSeriesPoint(date=key, count=count) for key, count in counts.items()]


# ============================================================
# Threat actors
# ============================================================

@dataclass
class _ActorRollup:
    name: str
    incident_count: int = 0
    # dicts as insertion-ordered sets
    countries: Dict[str, None] = field(default_factory=dict)
    families: Dict[str, None] = field(default_factory=dict)
    first_seen: Optional[Tuple[datetime.date, str]] = None
    last_seen: Optional[Tuple[datetime.date, str]] = None

    def add(self, record: Any) -> None:
        self.incident_count += 1

        country = normalize_country(clean_text(field_value(record, "country")))
        if country:
            self.countries.setdefault(country, None)

        family = clean_text(field_value(record, "ransomware_family"))
        if family:
            self.families.setdefault(family, None)

        raw_date = clean_text(field_value(record, "incident_date"))
        day = parse_date(raw_date)
        if day is None:
            return
        if self.first_seen is None or day < self.first_seen[0]:
            self.first_seen = (day, raw_date)
        if self.last_seen is None or day > self.last_seen[0]:
            self.last_seen = (day, raw_date)

    def summary(self) -> ThreatActorSummary:
        return ThreatActorSummary(
            name=self.name,
            incident_count=self.incident_count,
            countries_targeted=list(self.countries),
            ransomware_families=list(self.families),
            first_seen=self.first_seen[1] if self.first_seen else None,
            last_seen=self.last_seen[1] if self.last_seen else None,
        )


def rollup_by_actor(records: Iterable[Any], limit: Optional[int] = None) -> List[ThreatActorSummary]:
    """Per threat actor: incident count, countries, families, first/last seen."""
    actors: Dict[str, _ActorRollup] = {}
    for record in records:
        name = clean_text(field_value(record, "threat_actor_name"))
        if not name:
            continue
        actors.setdefault(name, _ActorRollup(name=name)).add(record)

    ordered = sorted(actors.values(), key=lambda actor: (-actor.incident_count, actor.name))
    if limit is not None:
        ordered = ordered[:limit]
    return [actor.summary() for actor in ordered]


# ============================================================
# Dashboard statistics
# ============================================================

def _data_breached(record: Any) -> bool:
    if field_value(record, "data_breached"):
        return True
    impact = field_value(record, "data_impact")
    return bool(impact is not None and field_value(impact, "data_breached"))


def compute_stats(records: Sequence[Any], last_updated: Optional[str] = None) -> DashboardStats:
    """Headline counts for a set of records, as /api/stats reports them."""
    enriched = sum(1 for r in records if field_value(r, "llm_enriched"))
    countries = {normalize_country(clean_text(field_value(r, "country"))) for r in records} - {None}
    actors = {clean_text(field_value(r, "threat_actor_name")) for r in records} - {None}
    ransomware = [r for r in records if is_ransomware(r)]
    families = {ransomware_family_of(r) for r in ransomware} - {None}

    return DashboardStats(
        total_incidents=len(records),
        enriched_incidents=enriched,
        unenriched_incidents=len(records) - enriched,
        incidents_with_ransomware=len(ransomware),
        incidents_with_data_breach=sum(1 for r in records if _data_breached(r)),
        countries_affected=len(countries),
        unique_threat_actors=len(actors),
        unique_ransomware_families=len(families),
        last_updated=last_updated or now_utc_iso(),
    )


def dashboard_rates(stats: DashboardStats) -> DashboardRates:
    """Ransomware, data breach and enrichment rates over all incidents."""
    total = stats.total_incidents
    return DashboardRates(
        total_incidents=total,
        ransomware_rate=percentage(stats.incidents_with_ransomware, total),
        data_breach_rate=percentage(stats.incidents_with_data_breach, total),
        enrichment_coverage=percentage(stats.enriched_incidents, total),
    )


def derive_filter_options(records: Sequence[Any]) -> FilterOptions:
    """Filter control values from records in hand (mirrors /api/filters)."""
    def distinct(values: Iterable[Optional[str]]) -> List[str]:
        return sorted({v for v in values if v})

    years = {day.year for day in (parse_date(field_value(r, "incident_date")) for r in records) if day}

    return FilterOptions(
        countries=distinct(normalize_country(clean_text(field_value(r, "country"))) for r in records),
        attack_categories=distinct(clean_text(field_value(r, "attack_category")) for r in records),
        ransomware_families=distinct(ransomware_family_of(r) for r in records if is_ransomware(r)),
        threat_actors=distinct(clean_text(field_value(r, "threat_actor_name")) for r in records),
        institution_types=distinct(clean_text(field_value(r, "institution_type")) for r in records),
        years=sorted(years, reverse=True),
    )
