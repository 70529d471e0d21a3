from sqlalchemy import Column, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.sql import func

from convo_core.database import Base


class Interaction(Base):
    __tablename__ = "interactions"
    __table_args__ = (
        UniqueConstraint("tenant_id", "channel", "message_id", name="uq_interactions_tenant_channel_message"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Text, nullable=False)
    channel = Column(Text, nullable=False)
    message_id = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
