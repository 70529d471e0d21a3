"""Outbound send deduplication.

Webhook retries can deliver the same inbound message twice and both deliveries may
reach the send step. The reservation row (tenant_id, channel, message_id) is inserted
with ON CONFLICT DO NOTHING: the attempt that inserts owns the send, an attempt that
affects zero rows treats the message as already handled.
"""

from typing import Callable, Optional

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from convo_core.logging_config import get_logger
from convo_core.models import Interaction

logger = get_logger("dedupe_service")

Sender = Callable[[str, str, str], bool]


def outbound_id(message_id: Optional[str]) -> Optional[str]:
    message_id = (message_id or "").strip()
    return f"{message_id}-out" if message_id else None


def reserve_outbound(db: Session, *, tenant_id: str, channel: str, message_id: str) -> bool:
    """True when this call inserted the reservation and owns the send."""
    stmt = (
        insert(Interaction)
        .values(tenant_id=tenant_id, channel=channel, message_id=message_id)
        .on_conflict_do_nothing(index_elements=["tenant_id", "channel", "message_id"])
    )
    result = db.execute(stmt)
    return result.rowcount > 0


def release_outbound(db: Session, *, tenant_id: str, channel: str, message_id: str) -> None:
    (
        db.query(Interaction)
        .filter(
            Interaction.tenant_id == tenant_id,
            Interaction.channel == channel,
            Interaction.message_id == message_id,
        )
        .delete(synchronize_session=False)
    )


def safe_send(
    db: Session,
    *,
    tenant_id: str,
    channel: str,
    message_id: Optional[str],
    to: str,
    text: str,
    send: Sender,
) -> bool:
    """Send at most once per inbound message id.

    Without a message id there is nothing to dedupe on and the text is sent once.
    A lost reservation race returns True without sending. A failed send releases
    the reservation so a later retry can go through.
    """
    context = {"tenant_id": tenant_id, "channel": channel, "message_id": message_id}
    dedupe_id = outbound_id(message_id)

    if dedupe_id is None:
        return _send(send, to, text, tenant_id, context)

    if not reserve_outbound(db, tenant_id=tenant_id, channel=channel, message_id=dedupe_id):
        logger.info("Outbound already reserved, skipping send", extra={"context": context})
        return True
    db.commit()

    if _send(send, to, text, tenant_id, context):
        return True

    release_outbound(db, tenant_id=tenant_id, channel=channel, message_id=dedupe_id)
    db.commit()
    logger.warning("Send failed, reservation released", extra={"context": context})
    return False


def _send(send: Sender, to: str, text: str, tenant_id: str, context: dict) -> bool:
    try:
        return bool(send(to, text, tenant_id))
    except Exception as e:
        logger.error(f"Sender raised: {e}", extra={"context": context}, exc_info=True)
        return False
