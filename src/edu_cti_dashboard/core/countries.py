"""
Country code/name tables, flag derivation and region membership.

All tables are read-only mappings built once at import time. Functions take
the table they read as a keyword argument (defaulting to the module table)
so callers can inject a different one.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

UNKNOWN_FLAG = "🌍"
OTHER_REGION = "Other"

# Regional Indicator Symbol Letter A
_REGIONAL_INDICATOR_A = 0x1F1E6

# ISO 3166-1 alpha-2 to full country name mapping
COUNTRY_CODE_TO_NAME: Mapping[str, str] = MappingProxyType({
    "US": "United States",
    "GB": "United Kingdom",
    "CA": "Canada",
    "AU": "Australia",
    "DE": "Germany",
    "FR": "France",
    "IT": "Italy",
    "ES": "Spain",
    "NL": "Netherlands",
    "BE": "Belgium",
    "CH": "Switzerland",
    "AT": "Austria",
    "SE": "Sweden",
    "NO": "Norway",
    "DK": "Denmark",
    "FI": "Finland",
    "PL": "Poland",
    "CZ": "Czech Republic",
    "IE": "Ireland",
    "PT": "Portugal",
    "GR": "Greece",
    "HU": "Hungary",
    "RO": "Romania",
    "BG": "Bulgaria",
    "HR": "Croatia",
    "SK": "Slovakia",
    "SI": "Slovenia",
    "LT": "Lithuania",
    "LV": "Latvia",
    "EE": "Estonia",
    "LU": "Luxembourg",
    "MT": "Malta",
    "CY": "Cyprus",
    "IS": "Iceland",
    "JP": "Japan",
    "CN": "China",
    "IN": "India",
    "KR": "South Korea",
    "SG": "Singapore",
    "MY": "Malaysia",
    "TH": "Thailand",
    "PH": "Philippines",
    "ID": "Indonesia",
    "VN": "Vietnam",
    "NZ": "New Zealand",
    "BR": "Brazil",
    "MX": "Mexico",
    "AR": "Argentina",
    "CL": "Chile",
    "CO": "Colombia",
    "PE": "Peru",
    "ZA": "South Africa",
    "EG": "Egypt",
    "NG": "Nigeria",
    "KE": "Kenya",
    "IL": "Israel",
    "AE": "United Arab Emirates",
    "SA": "Saudi Arabia",
    "TR": "Turkey",
    "RU": "Russia",
    "UA": "Ukraine",
    "PK": "Pakistan",
    "BD": "Bangladesh",
    "TW": "Taiwan",
    "HK": "Hong Kong",
})

# Reverse mapping: full name to code (for flag lookup)
COUNTRY_NAME_TO_CODE: Mapping[str, str] = MappingProxyType(
    {name: code for code, name in COUNTRY_CODE_TO_NAME.items()}
)

# Common variations and aliases
COUNTRY_ALIASES: Mapping[str, str] = MappingProxyType({
    "United States of America": "United States",
    "USA": "United States",
    "U.S.A.": "United States",
    "U.S.": "United States",
    "UK": "United Kingdom",
    "U.K.": "United Kingdom",
    "Great Britain": "United Kingdom",
    "Britain": "United Kingdom",
    "England": "United Kingdom",
    "Scotland": "United Kingdom",
    "Wales": "United Kingdom",
    "Northern Ireland": "United Kingdom",
})

# Coarse dashboard regions. Independent of an incident's own `region` field,
# which holds a state or province.
_REGION_MEMBERS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("North America", ("United States", "Canada", "Mexico")),
    ("Europe", (
        "United Kingdom", "Germany", "France", "Italy", "Spain", "Netherlands",
        "Belgium", "Austria", "Switzerland", "Poland", "Sweden", "Norway",
        "Denmark", "Finland", "Ireland", "Portugal", "Greece", "Czech Republic",
        "Hungary", "Romania", "Bulgaria", "Croatia", "Slovakia", "Slovenia",
        "Lithuania", "Latvia", "Estonia", "Luxembourg", "Malta", "Cyprus",
        "Iceland",
    )),
    ("Asia Pacific", (
        "Australia", "New Zealand", "Japan", "South Korea", "Singapore",
        "Hong Kong", "Taiwan", "India", "Philippines", "Malaysia", "Thailand",
        "Indonesia", "Vietnam", "China",
    )),
    ("Middle East & Africa", (
        "Israel", "United Arab Emirates", "Saudi Arabia", "South Africa",
        "Egypt", "Nigeria", "Kenya",
    )),
    ("Latin America", ("Brazil", "Argentina", "Chile", "Colombia", "Peru")),
)

COUNTRY_TO_REGION: Mapping[str, str] = MappingProxyType({
    country: region
    for region, countries in _REGION_MEMBERS
    for country in countries
})


def normalize_country(
    country: Optional[str],
    *,
    names_to_codes: Mapping[str, str] = COUNTRY_NAME_TO_CODE,
    codes_to_names: Mapping[str, str] = COUNTRY_CODE_TO_NAME,
    aliases: Mapping[str, str] = COUNTRY_ALIASES,
) -> Optional[str]:
    """
    Normalize country code or name to full country name.

    Args:
        country: Country code (e.g., "US"), full name (e.g., "United States"),
                or alias (e.g., "USA")

    Returns:
        Full country name, the stripped input if it is not in the tables,
        or None for empty input
    """
    if not country:
        return None

    country = country.strip()
    if not country:
        return None

    if country in names_to_codes:
        return country

    if country in aliases:
        return aliases[country]

    country_upper = country.upper()
    if country_upper in codes_to_names:
        return codes_to_names[country_upper]

    lowered = country.lower()
    for name in names_to_codes:
        if name.lower() == lowered:
            return name

    # Countries missing from the tables pass through untouched
    return country


def get_country_code(
    country: Optional[str],
    *,
    names_to_codes: Mapping[str, str] = COUNTRY_NAME_TO_CODE,
    codes_to_names: Mapping[str, str] = COUNTRY_CODE_TO_NAME,
    aliases: Mapping[str, str] = COUNTRY_ALIASES,
) -> Optional[str]:
    """Get the ISO 3166-1 alpha-2 code for a country name, code or alias."""
    normalized = normalize_country(
        country,
        names_to_codes=names_to_codes,
        codes_to_names=codes_to_names,
        aliases=aliases,
    )
    if not normalized:
        return None
    return names_to_codes.get(normalized)


def code_to_flag(code: Optional[str]) -> Optional[str]:
    """
    Build a flag emoji from a two-letter code.

    Each letter maps to its regional indicator symbol; the pair renders as
    the flag. Returns None when the input is not two ASCII letters.
    """
    if not code or len(code) != 2:
        return None
    code = code.upper()
    if not ("A" <= code[0] <= "Z" and "A" <= code[1] <= "Z"):
        return None
    return "".join(chr(_REGIONAL_INDICATOR_A + ord(char) - ord("A")) for char in code)


def get_flag(
    country: Optional[str],
    flag_emoji: Optional[str] = None,
    *,
    names_to_codes: Mapping[str, str] = COUNTRY_NAME_TO_CODE,
    aliases: Mapping[str, str] = COUNTRY_ALIASES,
) -> str:
    """
    Resolve the flag shown next to a country.

    A flag supplied by the API always wins. Aliases resolve first, so "UK"
    maps to Great Britain. Otherwise a two-letter value is treated as an ISO
    code and a full name is looked up in the name table. Anything else gets
    the globe.
    """
    if flag_emoji:
        return flag_emoji

    if not country:
        return UNKNOWN_FLAG
    country = country.strip()
    name = aliases.get(country) or next(
        (full for alias, full in aliases.items() if alias.lower() == country.lower()),
        country,
    )

    if len(name) == 2:
        return code_to_flag(name) or UNKNOWN_FLAG

    code = names_to_codes.get(name)
    if code is None:
        lowered = name.lower()
        code = next(
            (c for n, c in names_to_codes.items() if n.lower() == lowered),
            None,
        )
    return code_to_flag(code) or UNKNOWN_FLAG


def region_for_country(
    country: Optional[str],
    region_table: Mapping[str, str] = COUNTRY_TO_REGION,
) -> str:
    """Region name for a full country name, or "Other"."""
    if not country:
        return OTHER_REGION
    return region_table.get(country, OTHER_REGION)
