from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY

from convo_core.database import Base


class Intent(Base):
    __tablename__ = "intents"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    channel = Column(Text, nullable=False)  # whatsapp, facebook, instagram, meta, voice
    name = Column(Text, nullable=False)
    examples = Column(ARRAY(Text), nullable=False, default=list)
    response = Column(Text, nullable=False)
    language = Column(Text)  # NULL = any language
    priority = Column(Integer, nullable=False, default=100)
    active = Column(Boolean, nullable=False, default=True)
