import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable

import yaml

from convo_core.services.text_match import normalize

_RULES_PATH = Path(__file__).resolve().parents[1] / "knowledge" / "rules.yaml"


@lru_cache(maxsize=4)
def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def load_rules() -> dict:
    return _load_yaml(_RULES_PATH)


def keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    """Whole-word alternation over normalized keywords, longest first."""
    normalized = sorted({normalize(str(k)) for k in keywords if normalize(str(k))}, key=len, reverse=True)
    if not normalized:
        return re.compile(r"(?!x)x")
    alternation = "|".join(re.escape(k) for k in normalized)
    return re.compile(rf"\b(?:{alternation})\b")


def rule_list(name: str) -> list:
    value = load_rules().get(name)
    return value if isinstance(value, list) else []


def rule_map(name: str) -> dict:
    value = load_rules().get(name)
    return value if isinstance(value, dict) else {}
