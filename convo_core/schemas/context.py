from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from convo_core.logging_config import get_logger

logger = get_logger("context")


class LastServiceRef(BaseModel):
    kind: Optional[Literal["service", "variant"]] = None
    label: Optional[str] = None
    service_id: Optional[str] = None
    variant_id: Optional[str] = None
    saved_at: datetime

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        saved = self.saved_at if self.saved_at.tzinfo else self.saved_at.replace(tzinfo=timezone.utc)
        return (now - saved).total_seconds()

    def is_fresh(self, ttl_minutes: int, now: Optional[datetime] = None) -> bool:
        return self.age_seconds(now) < ttl_minutes * 60


class ConversationContext(BaseModel):
    """Known context keys. Any other key is carried through untouched."""

    model_config = ConfigDict(extra="allow")

    last_service_ref: Optional[LastServiceRef] = None
    booking: Optional[dict[str, Any]] = None
    onboarding_completed: Optional[bool] = None


class ConversationState(BaseModel):
    tenant_id: str
    channel: str
    sender_id: str
    active_flow: Optional[str] = None
    active_step: Optional[str] = None
    context: dict[str, Any] = {}

    @property
    def has_active_step(self) -> bool:
        return bool(self.active_flow and self.active_step)


def coerce_context(raw: Any) -> dict[str, Any]:
    """Validate a persisted context blob.

    Non-object blobs become {}. A known key with a bad shape is dropped on its own;
    every other key survives.
    """
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("Non-object context replaced with empty object", extra={"context": {"type": type(raw).__name__}})
        return {}

    context = dict(raw)
    for key in ("last_service_ref", "booking", "onboarding_completed"):
        if key not in context or context[key] is None:
            continue
        try:
            ConversationContext.model_validate({key: context[key]})
        except ValidationError as exc:
            logger.warning(
                "Dropped malformed context key",
                extra={"context": {"key": key, "errors": exc.error_count()}},
            )
            context.pop(key)
    return context


def read_last_service_ref(context: Optional[dict[str, Any]]) -> Optional[LastServiceRef]:
    if not context or not isinstance(context.get("last_service_ref"), dict):
        return None
    try:
        return LastServiceRef.model_validate(context["last_service_ref"])
    except ValidationError:
        return None
