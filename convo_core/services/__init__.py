from convo_core.services.catalog_render import render_catalog_facts
from convo_core.services.catalog_resolver import CatalogResolver
from convo_core.services.catalog_store import CatalogStore
from convo_core.services.dedupe_service import outbound_id, release_outbound, reserve_outbound, safe_send
from convo_core.services.flow_engine import FlowEngine, FlowResult, is_cancel_message
from convo_core.services.flow_repository import FlowRepository
from convo_core.services.intent_matcher import IntentMatcher
from convo_core.services.memory_store import ClientMemoryStore
from convo_core.services.result import FailureCode, Result
from convo_core.services.state_store import ConversationStateStore, merge_context
from convo_core.services.text_match import best_match, normalize, similarity
