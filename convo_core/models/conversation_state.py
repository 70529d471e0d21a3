from sqlalchemy import Column, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.sql import func

from convo_core.database import Base


class ConversationStateRecord(Base):
    __tablename__ = "conversation_state"

    tenant_id = Column(Text, primary_key=True)
    channel = Column(Text, primary_key=True)  # whatsapp, facebook, instagram, sms, voice
    sender_id = Column(Text, primary_key=True)
    active_flow = Column(Text)
    active_step = Column(Text)
    context = Column(JSONB, nullable=False, default=dict)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
