from typing import Optional

from sqlalchemy.orm import Session

from convo_core.models import Flow, FlowStep


class FlowRepository:
    def __init__(self, db: Optional[Session] = None):
        self.db = db

    def get_flow_by_key(self, tenant_id: str, flow_key: str) -> Optional[Flow]:
        return self.db.query(Flow).filter(Flow.tenant_id == tenant_id, Flow.flow_key == flow_key).first()

    def get_step_by_key(self, flow_id: int, step_key: str) -> Optional[FlowStep]:
        return self.db.query(FlowStep).filter(FlowStep.flow_id == flow_id, FlowStep.step_key == step_key).first()

    def get_first_step(self, flow_id: int) -> Optional[FlowStep]:
        return (
            self.db.query(FlowStep)
            .filter(FlowStep.flow_id == flow_id)
            .order_by(FlowStep.order_index.asc(), FlowStep.id.asc())
            .first()
        )
