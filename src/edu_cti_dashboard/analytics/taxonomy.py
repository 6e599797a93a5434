"""
Display labels and style classification for incident categories.

Raw categories arrive as snake_case tokens ("data_breach", "ransomware")
or not at all. Everything here degrades to "Unknown" or a neutral style
instead of raising, so a malformed record can still be rendered.

Style rules are ordered (predicate, tag) tables evaluated top to bottom;
the first match wins. Categories can carry several keywords
("ransomware_phishing_combo"), so order is part of the contract.
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, TypeVar

UNKNOWN_LABEL = "Unknown"

_WORD_START = re.compile(r"\b\w")

T = TypeVar("T")


class StyleTag(str, Enum):
    """Semantic style classes; the frontend maps them to colours."""
    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"
    CAUTION = "caution"
    ACCENT = "accent"
    SUCCESS = "success"
    NEUTRAL = "neutral"
    DEFAULT = "default"


Rule = Tuple[Callable[[str], bool], StyleTag]


def _contains(keyword: str) -> Callable[[str], bool]:
    return lambda value: keyword in value


def _equals(expected: str) -> Callable[[str], bool]:
    return lambda value: value == expected


ATTACK_TYPE_RULES: Tuple[Rule, ...] = (
    (_contains("ransomware"), StyleTag.DANGER),
    (_contains("phishing"), StyleTag.WARNING),
    (_contains("data_breach"), StyleTag.INFO),
    (_contains("ddos"), StyleTag.CAUTION),
    (_contains("malware"), StyleTag.ACCENT),
)

SEVERITY_RULES: Tuple[Rule, ...] = (
    (_equals("critical"), StyleTag.DANGER),
    (_equals("high"), StyleTag.WARNING),
    (_equals("medium"), StyleTag.CAUTION),
    (_equals("low"), StyleTag.SUCCESS),
)

STATUS_RULES: Tuple[Rule, ...] = (
    (_equals("confirmed"), StyleTag.SUCCESS),
    (_equals("suspected"), StyleTag.CAUTION),
)

# dimension -> (rules, fallback when nothing matches)
STYLE_RULES: Mapping[str, Tuple[Tuple[Rule, ...], StyleTag]] = MappingProxyType({
    "attack_type": (ATTACK_TYPE_RULES, StyleTag.DEFAULT),
    "attack_category": (ATTACK_TYPE_RULES, StyleTag.DEFAULT),
    "severity": (SEVERITY_RULES, StyleTag.INFO),
    "incident_severity": (SEVERITY_RULES, StyleTag.INFO),
    "status": (STATUS_RULES, StyleTag.NEUTRAL),
})

# Chart palette per ransomware family (exact, lower-cased raw value)
RANSOMWARE_FAMILY_COLORS: Mapping[str, str] = MappingProxyType({
    "lockbit": "red",
    "blackcat_alphv": "purple",
    "cl0p_clop": "orange",
    "akira": "cyan",
    "play": "yellow",
    "black_basta": "pink",
    "medusa": "green",
    "rhysida": "blue",
    "royal": "rose",
    "hive": "amber",
})
DEFAULT_FAMILY_COLOR = "gray"

# Coarse groups used by the attacks page; checked in order
ATTACK_GROUP_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("ransomware",), "ransomware"),
    (("phishing", "bec"), "phishing"),
)
OTHER_ATTACK_GROUP = "other"


def normalize_category(raw: Optional[str]) -> str:
    """
    Turn a raw category token into a display label.

    "data_breach" -> "Data Breach"; None, "" or whitespace -> "Unknown".
    Only the first letter of each word is touched, so "DDoS_attack" becomes
    "DDoS Attack".
    """
    if raw is None:
        return UNKNOWN_LABEL
    text = str(raw).replace("_", " ").strip()
    if not text:
        return UNKNOWN_LABEL
    return _WORD_START.sub(lambda m: m.group(0).upper(), text)


def classify(raw: Optional[str], rules: Sequence[Rule], default: StyleTag) -> StyleTag:
    """Evaluate an ordered rule table against a lower-cased value."""
    value = (raw or "").strip().lower()
    if not value:
        return default
    for predicate, tag in rules:
        if predicate(value):
            return tag
    return default


def color_class_for(dimension: str, raw: Optional[str]) -> StyleTag:
    """Style tag for a raw value of `dimension`; unknown dimensions get DEFAULT."""
    rules, default = STYLE_RULES.get(dimension, ((), StyleTag.DEFAULT))
    return classify(raw, rules, default)


def attack_group(category: Optional[str]) -> str:
    value = (category or "").lower()
    for keywords, group in ATTACK_GROUP_RULES:
        if any(keyword in value for keyword in keywords):
            return group
    return OTHER_ATTACK_GROUP


def share_intensity(percentage: float) -> StyleTag:
    """Badge style for a ransomware family's share of incidents."""
    if percentage >= 20:
        return StyleTag.DANGER
    if percentage >= 10:
        return StyleTag.WARNING
    return StyleTag.CAUTION


def activity_level(incident_count: int) -> Tuple[str, StyleTag]:
    """Threat actor activity badge: (label, style)."""
    if incident_count >= 10:
        return "High Activity", StyleTag.DANGER
    if incident_count >= 5:
        return "Medium", StyleTag.WARNING
    return "Low", StyleTag.CAUTION


def truncate_display(items: Sequence[T], limit: int) -> Tuple[List[T], int]:
    """First `limit` items and how many were left out (the "+N more")."""
    limit = max(0, limit)
    shown = list(items[:limit])
    return shown, len(items) - len(shown)


def ransomware_color(
    family: Optional[str],
    palette: Mapping[str, str] = RANSOMWARE_FAMILY_COLORS,
) -> str:
    return palette.get((family or "").strip().lower(), DEFAULT_FAMILY_COLOR)
