from sqlalchemy import Column, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.sql import func

from convo_core.database import Base


class ClientMemory(Base):
    __tablename__ = "client_memory"

    tenant_id = Column(Text, primary_key=True)
    channel = Column(Text, primary_key=True)
    sender_id = Column(Text, primary_key=True)
    key = Column(Text, primary_key=True)
    value = Column(JSONB, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
