"""
Group country aggregates into coarse dashboard regions.

Countries missing from the region table land in "Other"; they are never
dropped. Region totals are always summed from the grouped countries, never
stored separately.
"""

from typing import Dict, Iterable, List, Mapping

from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.countries import COUNTRY_TO_REGION, region_for_country
from edu_cti_dashboard.core.models import CountByCategory, RegionGroup


def group_by_region(
    country_aggregates: Iterable[CountByCategory],
    region_table: Mapping[str, str] = COUNTRY_TO_REGION,
) -> Dict[str, List[CountByCategory]]:
    """
    {region: [country aggregate, ...]}, keeping the upstream order of
    countries inside each region and regions in order of first appearance.
    """
    grouped: Dict[str, List[CountByCategory]] = {}
    for entry in country_aggregates:
        region = region_for_country(entry.category, region_table)
        grouped.setdefault(region, []).append(entry)
    return grouped


def region_total(entries: Iterable[CountByCategory]) -> int:
    return sum(entry.count for entry in entries)


def rank_regions(
    grouped: Mapping[str, List[CountByCategory]],
    countries_per_region: int = config.REGION_CARD_COUNTRIES,
) -> List[RegionGroup]:
    """
    Region cards, largest total first (region name breaks ties), each
    showing at most `countries_per_region` countries.
    """
    cards = []
    for region, entries in grouped.items():
        shown = list(entries[:countries_per_region])
        cards.append(
            RegionGroup(
                region=region,
                total=region_total(entries),
                countries=shown,
                remaining=len(entries) - len(shown),
            )
        )
    cards.sort(key=lambda card: (-card.total, card.region))
    return cards
