import re
from typing import Any, Optional

from sqlalchemy.orm import Session

from convo_core.config import settings
from convo_core.logging_config import get_logger
from convo_core.models import Intent
from convo_core.services.text_match import best_match, normalize, phrase_coverage, squash_repeats

logger = get_logger("intent_matcher")

META_CHANNELS = ("meta", "facebook", "instagram")

_ARRAY_SPLIT = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')


def channels_for(channel: Optional[str]) -> list[str]:
    """The "meta" channel covers its Facebook and Instagram inboxes too."""
    value = (channel or "whatsapp").lower()
    return list(META_CHANNELS) if value == "meta" else [value]


def parse_examples(raw: Any) -> list[str]:
    """Accept a list or a PostgreSQL array literal such as '{hola,"buenos dias"}'."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(item) for item in raw if item is not None]
    if isinstance(raw, str):
        inside = raw.strip()
        if inside.startswith("{") and inside.endswith("}"):
            inside = inside[1:-1]
        if not inside:
            return []
        items = []
        for part in _ARRAY_SPLIT.split(inside):
            part = part.strip()
            if len(part) >= 2 and part.startswith('"') and part.endswith('"'):
                part = part[1:-1]
            if part:
                items.append(part)
        return items
    return []


def prepare(text: Optional[str]) -> str:
    return squash_repeats(normalize(text))


class IntentMatcher:
    def __init__(self, db: Optional[Session] = None, threshold: Optional[float] = None):
        self.db = db
        self.threshold = settings.intent_match_threshold if threshold is None else threshold

    def match(
        self,
        tenant_id: str,
        channel: str,
        text: str,
        detected_lang: Optional[str] = None,
        threshold: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        """Best intent across the tenant's active rows, or None.

        Rows come ordered by priority then id and only a strictly higher score replaces
        the current best, so priority breaks ties.
        """
        limit = self.threshold if threshold is None else threshold
        lang = (detected_lang or "").lower() or None
        message = prepare(text)
        if not message:
            return None

        best = None
        for row in self._load_rows(tenant_id, channels_for(channel)):
            if lang and row.language and row.language.lower() != lang:
                continue
            examples = [prepare(example) for example in parse_examples(row.examples)]
            found = best_match(message, examples, limit, scorer=phrase_coverage)
            if found is None:
                continue
            logger.debug(
                "Intent candidate",
                extra={"context": {"tenant_id": tenant_id, "intent": row.name, "score": found.score}},
            )
            if best is None or found.score > best[1].score:
                best = (row, found)

        if best is None:
            return None

        row, found = best
        return {
            "id": row.id,
            "channel": row.channel,
            "intent": row.name,
            "response": row.response,
            "priority": row.priority,
            "score": round(found.score, 3),
            "matched_pattern": found.candidate,
        }

    def _load_rows(self, tenant_id: str, channels: list[str]) -> list[Intent]:
        return (
            self.db.query(Intent)
            .filter(Intent.tenant_id == tenant_id, Intent.channel.in_(channels), Intent.active.is_(True))
            .order_by(Intent.priority.asc(), Intent.id.asc())
            .all()
        )
