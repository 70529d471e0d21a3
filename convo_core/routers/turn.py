from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from convo_core.database import get_db
from convo_core.logging_config import get_logger
from convo_core.schemas.catalog import CatalogResult
from convo_core.schemas.turn import (
    CatalogRequest,
    CatalogResponse,
    IntentMatchRequest,
    IntentMatchResponse,
    TurnRequest,
    TurnResponse,
)
from convo_core.services.catalog_render import render_catalog_facts
from convo_core.services.catalog_resolver import CatalogResolver
from convo_core.services.catalog_store import CatalogStore
from convo_core.services.flow_engine import FlowEngine, is_cancel_message
from convo_core.services.flow_repository import FlowRepository
from convo_core.services.intent_matcher import IntentMatcher
from convo_core.services.memory_store import ClientMemoryStore
from convo_core.services.state_store import ConversationStateStore

logger = get_logger("turn_router")

router = APIRouter()


def get_state_store(db: Session = Depends(get_db)) -> ConversationStateStore:
    return ConversationStateStore(db)


def get_flow_engine(
    db: Session = Depends(get_db),
    state_store: ConversationStateStore = Depends(get_state_store),
) -> FlowEngine:
    return FlowEngine(state_store, ClientMemoryStore(db), FlowRepository(db))


def get_catalog_resolver(db: Session = Depends(get_db)) -> CatalogResolver:
    return CatalogResolver(CatalogStore(db))


def get_intent_matcher(db: Session = Depends(get_db)) -> IntentMatcher:
    return IntentMatcher(db)


@router.post("/turn", response_model=TurnResponse)
def handle_turn(
    request: TurnRequest,
    db: Session = Depends(get_db),
    engine: FlowEngine = Depends(get_flow_engine),
):
    """Run one inbound message through the flow engine.

    A cancel phrase during an active flow clears it and hands the turn to the fallback.
    """
    context = {"tenant_id": request.tenant_id, "channel": request.channel, "sender_id": request.sender_id}
    try:
        if is_cancel_message(request.content):
            state = engine.state_store.get(request.tenant_id, request.channel, request.sender_id)
            if state is not None and state.has_active_step:
                engine.cancel(request.tenant_id, request.channel, request.sender_id)
                db.commit()
                return TurnResponse(reply=None, handled=False)

        result = engine.handle_turn(
            request.tenant_id, request.channel, request.sender_id, request.lang, request.content
        )
        db.commit()
        return TurnResponse(reply=result.reply, handled=result.handled)
    except Exception as e:
        db.rollback()
        logger.error(f"Turn failed: {e}", extra={"context": context}, exc_info=True)
        return TurnResponse(reply=None, handled=False)


@router.post("/catalog/resolve", response_model=CatalogResponse)
def resolve_catalog(
    request: CatalogRequest,
    db: Session = Depends(get_db),
    state_store: ConversationStateStore = Depends(get_state_store),
    resolver: CatalogResolver = Depends(get_catalog_resolver),
):
    """Resolve a catalog question and persist the sticky reference it returns."""
    context = {"tenant_id": request.tenant_id, "channel": request.channel, "sender_id": request.sender_id}
    try:
        state = state_store.get(request.tenant_id, request.channel, request.sender_id)
        result = resolver.resolve(request.tenant_id, request.content, request.lang, state.context if state else {})
        if result.ctx_patch:
            state_store.patch(request.tenant_id, request.channel, request.sender_id, result.ctx_patch)
            db.commit()
        prompt = render_catalog_facts(result.facts, request.lang) if result.facts else None
        return CatalogResponse(result=result, prompt=prompt)
    except Exception as e:
        db.rollback()
        logger.error(f"Catalog resolve failed: {e}", extra={"context": context}, exc_info=True)
        return CatalogResponse(result=CatalogResult.miss())


@router.post("/intents/match", response_model=IntentMatchResponse)
def match_intent(request: IntentMatchRequest, matcher: IntentMatcher = Depends(get_intent_matcher)):
    try:
        match = matcher.match(request.tenant_id, request.channel, request.content, request.lang)
        return IntentMatchResponse(match=match)
    except Exception as e:
        logger.error(f"Intent match failed: {e}", extra={"context": {"tenant_id": request.tenant_id}}, exc_info=True)
        return IntentMatchResponse(match=None)
