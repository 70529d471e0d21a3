"""Per-identity conversation state: active flow, active step and free-form context.

Writes are read-modify-write and not transactional. Two concurrent deliveries of the
same inbound message can both read the old context and the later write wins, losing
the other patch. Conversation state is soft; outbound dedupe (dedupe_service) is the
boundary that protects side effects.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from convo_core.logging_config import get_logger
from convo_core.models import ConversationStateRecord
from convo_core.schemas.context import ConversationState, coerce_context

logger = get_logger("state_store")


def merge_context(base: Optional[dict[str, Any]], patch: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Shallow merge: keys in patch replace the same top-level keys wholesale.

    Nested objects are not merged; patching "booking" replaces the whole booking dict.
    """
    merged = dict(base or {})
    merged.update(patch or {})
    return merged


class ConversationStateStore:
    def __init__(self, db: Optional[Session] = None):
        self.db = db

    def get(self, tenant_id: str, channel: str, sender_id: str) -> Optional[ConversationState]:
        record = self._fetch(tenant_id, channel, sender_id)
        if record is None:
            return None
        return ConversationState(
            tenant_id=tenant_id,
            channel=channel,
            sender_id=sender_id,
            active_flow=record.active_flow,
            active_step=record.active_step,
            context=coerce_context(record.context),
        )

    def set(
        self,
        tenant_id: str,
        channel: str,
        sender_id: str,
        active_flow: Optional[str],
        active_step: Optional[str],
        context_patch: Optional[dict[str, Any]] = None,
    ) -> ConversationState:
        """Overwrite flow/step and shallow-merge context_patch into the stored context."""
        current = self.get(tenant_id, channel, sender_id)
        context = merge_context(current.context if current else {}, context_patch)
        self._write(tenant_id, channel, sender_id, active_flow, active_step, context)
        logger.debug(
            "Conversation state set",
            extra={
                "context": {
                    "tenant_id": tenant_id,
                    "channel": channel,
                    "sender_id": sender_id,
                    "active_flow": active_flow,
                    "active_step": active_step,
                    "patched_keys": sorted((context_patch or {}).keys()),
                }
            },
        )
        return ConversationState(
            tenant_id=tenant_id,
            channel=channel,
            sender_id=sender_id,
            active_flow=active_flow,
            active_step=active_step,
            context=context,
        )

    def patch(self, tenant_id: str, channel: str, sender_id: str, patch: dict[str, Any]) -> ConversationState:
        """Merge into context only, keeping whatever flow/step is stored (or none)."""
        current = self.get(tenant_id, channel, sender_id)
        active_flow = current.active_flow if current else None
        active_step = current.active_step if current else None
        return self.set(tenant_id, channel, sender_id, active_flow, active_step, patch)

    def clear(self, tenant_id: str, channel: str, sender_id: str) -> None:
        self._delete(tenant_id, channel, sender_id)

    def get_or_init(
        self,
        tenant_id: str,
        channel: str,
        sender_id: str,
        default_flow: Optional[str],
        default_step: Optional[str],
    ) -> ConversationState:
        current = self.get(tenant_id, channel, sender_id)
        if current is not None:
            return current
        return self.set(tenant_id, channel, sender_id, default_flow, default_step, {})

    # Storage primitives

    def _fetch(self, tenant_id: str, channel: str, sender_id: str):
        return (
            self.db.query(ConversationStateRecord)
            .filter(
                ConversationStateRecord.tenant_id == tenant_id,
                ConversationStateRecord.channel == channel,
                ConversationStateRecord.sender_id == sender_id,
            )
            .first()
        )

    def _write(
        self,
        tenant_id: str,
        channel: str,
        sender_id: str,
        active_flow: Optional[str],
        active_step: Optional[str],
        context: dict[str, Any],
    ) -> None:
        now = datetime.now(timezone.utc)
        stmt = (
            insert(ConversationStateRecord)
            .values(
                tenant_id=tenant_id,
                channel=channel,
                sender_id=sender_id,
                active_flow=active_flow,
                active_step=active_step,
                context=context,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=["tenant_id", "channel", "sender_id"],
                set_={
                    "active_flow": active_flow,
                    "active_step": active_step,
                    "context": context,
                    "updated_at": now,
                },
            )
        )
        self.db.execute(stmt)
        self.db.flush()

    def _delete(self, tenant_id: str, channel: str, sender_id: str) -> None:
        (
            self.db.query(ConversationStateRecord)
            .filter(
                ConversationStateRecord.tenant_id == tenant_id,
                ConversationStateRecord.channel == channel,
                ConversationStateRecord.sender_id == sender_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.flush()
