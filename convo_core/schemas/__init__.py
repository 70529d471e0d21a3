from convo_core.schemas.catalog import CatalogFacts, CatalogNeed, CatalogOption, CatalogResult
from convo_core.schemas.context import ConversationContext, ConversationState, LastServiceRef
from convo_core.schemas.turn import TurnRequest, TurnResponse

__all__ = [
    "CatalogFacts",
    "CatalogNeed",
    "CatalogOption",
    "CatalogResult",
    "ConversationContext",
    "ConversationState",
    "LastServiceRef",
    "TurnRequest",
    "TurnResponse",
]
