from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from convo_core.logging_config import get_logger
from convo_core.models import ClientMemory

logger = get_logger("memory_store")


def is_blank(value: Any) -> bool:
    """Values that must never overwrite a stored fact."""
    return value is None or (isinstance(value, str) and not value.strip())


class ClientMemoryStore:
    """Long-term key/value facts per (tenant, channel, sender)."""

    def __init__(self, db: Optional[Session] = None):
        self.db = db

    def get(self, tenant_id: str, channel: str, sender_id: str, key: str) -> Any:
        row = self._fetch(tenant_id, channel, sender_id, key)
        return row.value if row is not None else None

    def set(self, tenant_id: str, channel: str, sender_id: str, key: str, value: Any) -> bool:
        if is_blank(value):
            logger.debug("Skipped blank memory write", extra={"context": {"tenant_id": tenant_id, "key": key}})
            return False
        self._write(tenant_id, channel, sender_id, key, value)
        return True

    def get_all(self, tenant_id: str, channel: str, sender_id: str) -> dict[str, Any]:
        rows = (
            self.db.query(ClientMemory)
            .filter(
                ClientMemory.tenant_id == tenant_id,
                ClientMemory.channel == channel,
                ClientMemory.sender_id == sender_id,
            )
            .order_by(ClientMemory.updated_at.desc())
            .all()
        )
        facts: dict[str, Any] = {}
        for row in rows:
            facts.setdefault(row.key, row.value)
        return facts

    def _fetch(self, tenant_id: str, channel: str, sender_id: str, key: str):
        return (
            self.db.query(ClientMemory)
            .filter(
                ClientMemory.tenant_id == tenant_id,
                ClientMemory.channel == channel,
                ClientMemory.sender_id == sender_id,
                ClientMemory.key == key,
            )
            .first()
        )

    def _write(self, tenant_id: str, channel: str, sender_id: str, key: str, value: Any) -> None:
        now = datetime.now(timezone.utc)
        stmt = (
            insert(ClientMemory)
            .values(tenant_id=tenant_id, channel=channel, sender_id=sender_id, key=key, value=value, updated_at=now)
            .on_conflict_do_update(
                index_elements=["tenant_id", "channel", "sender_id", "key"],
                set_={"value": value, "updated_at": now},
            )
        )
        self.db.execute(stmt)
        self.db.flush()
