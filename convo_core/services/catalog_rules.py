"""Heuristic classifiers for catalog questions, kept as ordered rule tables."""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence

from convo_core.schemas.catalog import CatalogNeed
from convo_core.services.rules import keyword_pattern, rule_list
from convo_core.services.text_match import normalize

SIZE_ORDER = {"small": 1, "medium": 2, "large": 3, "xl": 4}

# Raw (un-normalized) text keeps "-" and "+", needed for ranges like "16-30" or "31+".
_RANGE_PATTERN = re.compile(r"(?<!\d)(\d{1,3})\s*(?:-|–|to|a)\s*(\d{1,3})(?!\d)")
_OPEN_RANGE_PATTERN = re.compile(r"(?<!\d)(\d{1,3})\s*\+")
_UP_TO_PATTERN = re.compile(r"\b(?:up to|hasta|under|menos de)\s*(\d{1,3})\b")


@dataclass(frozen=True)
class NeedRule:
    need: CatalogNeed
    pattern: re.Pattern


@lru_cache(maxsize=1)
def need_rules() -> tuple[NeedRule, ...]:
    rules = []
    for entry in rule_list("catalog_needs"):
        if not isinstance(entry, dict) or entry.get("need") not in {n.value for n in CatalogNeed}:
            continue
        rules.append(NeedRule(need=CatalogNeed(entry["need"]), pattern=keyword_pattern(entry.get("keywords") or [])))
    return tuple(rules)


@lru_cache(maxsize=1)
def _catalog_vocabulary():
    return keyword_pattern(rule_list("catalog_vocabulary"))


@lru_cache(maxsize=1)
def _plan_vocabulary():
    return keyword_pattern(rule_list("plan_vocabulary"))


@lru_cache(maxsize=1)
def size_rules() -> tuple[tuple[str, re.Pattern], ...]:
    return tuple(
        (entry["token"], keyword_pattern(entry.get("keywords") or []))
        for entry in rule_list("size_tokens")
        if isinstance(entry, dict) and entry.get("token") in SIZE_ORDER
    )


@lru_cache(maxsize=1)
def _weight_pattern():
    units = sorted({normalize(u) for u in rule_list("weight_units") if normalize(u)}, key=len, reverse=True)
    alternation = "|".join(re.escape(u) for u in units) or "lbs?"
    return re.compile(rf"(?<![\d.,])(\d{{1,3}}(?:[.,]\d+)?)\s*(?:{alternation})\b")


def detect_catalog_need(text: Optional[str]) -> Optional[CatalogNeed]:
    """First matching need family, ANY for generic catalog words, else None."""
    normalized = normalize(text)
    if not normalized:
        return None
    for rule in need_rules():
        if rule.pattern.search(normalized):
            return rule.need
    if _catalog_vocabulary().search(normalized):
        return CatalogNeed.ANY
    return None


def mentions_plans(text: Optional[str]) -> bool:
    return bool(_plan_vocabulary().search(normalize(text)))


def infer_size_token(text: Optional[str]) -> Optional[str]:
    normalized = normalize(text)
    if not normalized:
        return None
    for token, pattern in size_rules():
        if pattern.search(normalized):
            return token
    return None


def infer_weight_lbs(text: Optional[str]) -> Optional[float]:
    match = _weight_pattern().search((text or "").lower())
    return float(match.group(1).replace(",", ".")) if match else None


def mentions_variant_hint(text: Optional[str]) -> bool:
    raw = (text or "").lower()
    return (
        infer_size_token(text) is not None
        or infer_weight_lbs(text) is not None
        or bool(_RANGE_PATTERN.search(raw))
        or bool(_OPEN_RANGE_PATTERN.search(raw))
    )


def weight_bounds_from_label(label: Optional[str]) -> tuple[Optional[float], Optional[float]]:
    """Read "0-15 lbs", "31+ lbs" or "up to 20 lbs" out of a variant name."""
    raw = (label or "").lower()
    if not _weight_pattern().search(normalize(raw)) and "lb" not in raw and "libra" not in raw:
        return None, None
    match = _RANGE_PATTERN.search(raw)
    if match:
        return float(match.group(1)), float(match.group(2))
    match = _OPEN_RANGE_PATTERN.search(raw)
    if match:
        return float(match.group(1)), None
    match = _UP_TO_PATTERN.search(raw)
    if match:
        return None, float(match.group(1))
    return None, None


def variant_weight_bounds(variant) -> tuple[Optional[float], Optional[float]]:
    low = float(variant.min_weight_lbs) if variant.min_weight_lbs is not None else None
    high = float(variant.max_weight_lbs) if variant.max_weight_lbs is not None else None
    if low is None and high is None:
        return weight_bounds_from_label(variant.variant_name)
    return low, high


def variant_size_token(variant) -> Optional[str]:
    if variant.size_token in SIZE_ORDER:
        return variant.size_token
    return infer_size_token(variant.variant_name)


def plan_name_regex() -> str:
    """PostgreSQL word-bounded regex over the plan vocabulary, for ordering plans first in SQL."""
    words = sorted(
        {str(w).lower().strip() for w in rule_list("plan_vocabulary") if str(w).strip()}, key=len, reverse=True
    )
    return r"\m(" + "|".join(re.escape(w) for w in words) + r")\M"


def is_plan(service) -> bool:
    if (service.service_type or "").lower() == "plan":
        return True
    return mentions_plans(service.name) or mentions_plans(service.category)


def variants_are_size_based(service, variants: Sequence) -> bool:
    """Size tiers get a size question; option sets such as membership tiers never do."""
    if not variants or is_plan(service):
        return False
    for variant in variants:
        if variant.size_token or variant.min_weight_lbs is not None or variant.max_weight_lbs is not None:
            return True
    for variant in variants:
        if variant_size_token(variant) or variant_weight_bounds(variant) != (None, None):
            return True
    return False


def pick_variant(variants: Sequence, size_token: Optional[str], weight_lbs: Optional[float]):
    """Weight inside declared bounds, then exact size token, then the first variant."""
    if not variants:
        return None
    if weight_lbs is not None:
        for variant in variants:
            low, high = variant_weight_bounds(variant)
            if low is None and high is None:
                continue
            if low is not None and weight_lbs < low:
                continue
            if high is not None and weight_lbs > high:
                continue
            return variant
    if size_token:
        for variant in variants:
            if variant_size_token(variant) == size_token:
                return variant
    return variants[0]
