from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from convo_core.database import Base


class Flow(Base):
    __tablename__ = "flows"
    __table_args__ = (UniqueConstraint("tenant_id", "flow_key", name="uq_flows_tenant_key"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Text, nullable=False)
    flow_key = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)

    steps = relationship("FlowStep", back_populates="flow", order_by="FlowStep.order_index")


class FlowStep(Base):
    __tablename__ = "flow_steps"
    __table_args__ = (UniqueConstraint("flow_id", "step_key", name="uq_flow_steps_flow_key"),)

    id = Column(Integer, primary_key=True)
    flow_id = Column(Integer, ForeignKey("flows.id"), nullable=False)
    step_key = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    prompt_es = Column(Text)
    prompt_en = Column(Text)
    # {"type": "channel_choice", "persist": {"key": ..., "value": ...}, "persist_complete_key": ...}
    expected = Column(JSONB, nullable=False, default=dict)
    on_success_next_step = Column(Text)  # NULL or "done" ends the flow

    flow = relationship("Flow", back_populates="steps")
