from convo_core.models.client_memory import ClientMemory
from convo_core.models.conversation_state import ConversationStateRecord
from convo_core.models.flow import Flow, FlowStep
from convo_core.models.intent import Intent
from convo_core.models.interaction import Interaction
from convo_core.models.service import Service, ServiceVariant

__all__ = [
    "ConversationStateRecord",
    "ClientMemory",
    "Flow",
    "FlowStep",
    "Service",
    "ServiceVariant",
    "Intent",
    "Interaction",
]
