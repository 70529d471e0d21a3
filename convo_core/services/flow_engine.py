"""Step-driven guided flows.

no flow -> (entry trigger) -> flow@step -> ... -> terminal (state cleared)

A turn with an active step validates the reply against the step's ``expected`` shape.
Invalid replies re-send the same prompt and never move the step; there is no attempt
cap, the caller abandons a flow through ``is_cancel_message`` + ``cancel``.
Structural problems (missing or disabled flow, missing step) clear the state and
report the turn as not handled so a fallback responder can answer.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional, Sequence

from convo_core.config import settings
from convo_core.logging_config import get_logger, turn_logger
from convo_core.services.alert_service import alert_warning
from convo_core.services.flow_repository import FlowRepository
from convo_core.services.memory_store import ClientMemoryStore
from convo_core.services.result import FailureCode, Result
from convo_core.services.rules import keyword_pattern, rule_list, rule_map
from convo_core.services.state_store import ConversationStateStore
from convo_core.services.text_match import normalize

logger = get_logger("flow_engine")

TERMINAL_STEP = "done"


@dataclass(frozen=True)
class FlowResult:
    reply: Optional[str]
    handled: bool


NOT_HANDLED = FlowResult(reply=None, handled=False)


# Step input parsers


@lru_cache(maxsize=1)
def _channel_keywords() -> dict[str, tuple[str, ...]]:
    return {
        channel: tuple(normalize(str(k)) for k in keywords if normalize(str(k)))
        for channel, keywords in rule_map("channels").items()
    }


@lru_cache(maxsize=1)
def _channel_mention_patterns() -> dict[str, re.Pattern]:
    return {channel: keyword_pattern(names) for channel, names in rule_map("channel_mentions").items()}


@lru_cache(maxsize=1)
def _all_channels_pattern():
    return keyword_pattern(rule_list("all_channels_phrases"))


@lru_cache(maxsize=1)
def _cancel_pattern():
    return keyword_pattern(rule_list("cancel_phrases"))


def detect_channels(text: Optional[str]) -> list[str]:
    """Channels named in text, in canonical order. Substring match, so "insta" counts."""
    normalized = normalize(text)
    if not normalized:
        return []
    if _all_channels_pattern().search(normalized):
        return list(_channel_keywords().keys())
    return [
        channel
        for channel, keywords in _channel_keywords().items()
        if any(keyword in normalized for keyword in keywords)
    ]


def mentioned_channels(text: Optional[str]) -> list[str]:
    """Channels named outright by whole word. Fragments and all-three phrases don't count."""
    normalized = normalize(text)
    if not normalized:
        return []
    return [channel for channel, pattern in _channel_mention_patterns().items() if pattern.search(normalized)]


def parse_text(raw: Optional[str]) -> Result[str]:
    trimmed = (raw or "").strip()
    if not trimmed:
        return Result.failure("Empty reply", FailureCode.INVALID_INPUT)
    return Result.success(trimmed)


def parse_channel_choice(raw: Optional[str]) -> Result[list[str]]:
    channels = detect_channels(raw)
    if not channels:
        return Result.failure("No channel named", FailureCode.INVALID_INPUT)
    return Result.success(channels)


STEP_PARSERS: dict[str, Callable[[Optional[str]], Result[Any]]] = {
    "text": parse_text,
    "channel_choice": parse_channel_choice,
}


def parse_step_input(expected: Optional[dict], raw: Optional[str]) -> Result[Any]:
    step_type = (expected or {}).get("type")
    if not step_type:
        return parse_text(raw)
    parser = STEP_PARSERS.get(step_type)
    if parser is None:
        logger.debug("Unknown step type, accepting text", extra={"context": {"type": step_type}})
        return parse_text(raw)
    return parser(raw)


def is_cancel_message(text: Optional[str]) -> bool:
    normalized = normalize(text)
    if not normalized or len(normalized.split()) > 3:
        return False
    return bool(_cancel_pattern().search(normalized))


def step_prompt(step, lang: str) -> str:
    if lang == "en":
        return step.prompt_en or step.prompt_es or ""
    return step.prompt_es or step.prompt_en or ""


# Entry triggers


@dataclass(frozen=True)
class TriggerInput:
    tenant_id: str
    channel: str
    sender_id: str
    text: str
    memory: ClientMemoryStore


@dataclass(frozen=True)
class TriggerDecision:
    flow_key: str
    reason: str
    step_key: Optional[str] = None
    consume_input: bool = False


EntryTrigger = Callable[[TriggerInput], Optional[TriggerDecision]]


def channel_keyword_trigger(flow_key: str, step_key: Optional[str] = None) -> EntryTrigger:
    """Naming a channel restarts the flow at step_key, even after it was completed once.

    The message itself is taken as the answer to that step.
    """

    def trigger(event: TriggerInput) -> Optional[TriggerDecision]:
        if mentioned_channels(event.text):
            return TriggerDecision(flow_key=flow_key, reason="channel_keyword", step_key=step_key, consume_input=True)
        return None

    return trigger


def first_contact_trigger(flow_key: str, completed_key: str) -> EntryTrigger:
    def trigger(event: TriggerInput) -> Optional[TriggerDecision]:
        completed = event.memory.get(event.tenant_id, event.channel, event.sender_id, completed_key)
        if completed:
            return None
        return TriggerDecision(flow_key=flow_key, reason="first_contact")

    return trigger


def default_triggers() -> list[EntryTrigger]:
    return [
        channel_keyword_trigger(settings.onboarding_flow_key, settings.onboarding_channel_step),
        first_contact_trigger(settings.onboarding_flow_key, settings.onboarding_completed_key),
    ]


class FlowEngine:
    def __init__(
        self,
        state_store: ConversationStateStore,
        memory_store: ClientMemoryStore,
        flow_repository: FlowRepository,
        triggers: Optional[Sequence[EntryTrigger]] = None,
    ):
        self.state_store = state_store
        self.memory_store = memory_store
        self.flows = flow_repository
        self.triggers = list(triggers) if triggers is not None else default_triggers()

    def handle_turn(self, tenant_id: str, channel: str, sender_id: str, lang: str, user_input: str) -> FlowResult:
        state = self.state_store.get(tenant_id, channel, sender_id)
        if state is None or not state.has_active_step:
            return self._try_start(tenant_id, channel, sender_id, lang, user_input)
        return self._advance(tenant_id, channel, sender_id, lang, user_input, state.active_flow, state.active_step)

    def start_flow(
        self,
        tenant_id: str,
        channel: str,
        sender_id: str,
        lang: str,
        flow_key: str,
        step_key: Optional[str] = None,
    ) -> FlowResult:
        """Start flow_key at step_key, or at its first step, and return that step's prompt."""
        log = turn_logger(logger, tenant_id, channel, sender_id)
        flow = self.flows.get_flow_by_key(tenant_id, flow_key)
        if flow is None or not flow.enabled:
            log.debug("Flow not available", context={"flow_key": flow_key})
            return NOT_HANDLED

        step = self.flows.get_step_by_key(flow.id, step_key) if step_key else self.flows.get_first_step(flow.id)
        if step is None:
            log.warning("Flow entry step missing", context={"flow_key": flow_key, "step": step_key})
            alert_warning("Flow entry step missing", {"tenant_id": tenant_id, "flow_key": flow_key, "step": step_key})
            return NOT_HANDLED

        self.state_store.set(tenant_id, channel, sender_id, flow.flow_key, step.step_key)
        log.info("Flow started", context={"flow_key": flow.flow_key, "step": step.step_key})
        return FlowResult(reply=step_prompt(step, lang), handled=True)

    def cancel(self, tenant_id: str, channel: str, sender_id: str) -> None:
        self.state_store.clear(tenant_id, channel, sender_id)
        turn_logger(logger, tenant_id, channel, sender_id).info("Flow cancelled by user")

    def _try_start(self, tenant_id: str, channel: str, sender_id: str, lang: str, user_input: str) -> FlowResult:
        event = TriggerInput(tenant_id, channel, sender_id, user_input or "", self.memory_store)
        decision = next((d for d in (trigger(event) for trigger in self.triggers) if d), None)
        if decision is None:
            return NOT_HANDLED

        log = turn_logger(logger, tenant_id, channel, sender_id)
        log.debug("Entry trigger fired", context={"flow_key": decision.flow_key, "reason": decision.reason})
        started = self.start_flow(tenant_id, channel, sender_id, lang, decision.flow_key, decision.step_key)
        if not started.handled or not decision.consume_input:
            return started

        state = self.state_store.get(tenant_id, channel, sender_id)
        return self._advance(tenant_id, channel, sender_id, lang, user_input, state.active_flow, state.active_step)

    def _abort(self, log, tenant_id: str, channel: str, sender_id: str, reason: str, **context) -> FlowResult:
        self.state_store.clear(tenant_id, channel, sender_id)
        log.warning(f"Flow aborted: {reason}", context=context)
        alert_warning(f"Flow aborted: {reason}", {"tenant_id": tenant_id, **context})
        return NOT_HANDLED

    def _advance(
        self,
        tenant_id: str,
        channel: str,
        sender_id: str,
        lang: str,
        user_input: str,
        flow_key: str,
        step_key: str,
    ) -> FlowResult:
        log = turn_logger(logger, tenant_id, channel, sender_id)

        flow = self.flows.get_flow_by_key(tenant_id, flow_key)
        if flow is None:
            return self._abort(log, tenant_id, channel, sender_id, "flow missing", flow_key=flow_key)
        if not flow.enabled:
            return self._abort(log, tenant_id, channel, sender_id, "flow disabled", flow_key=flow_key)

        step = self.flows.get_step_by_key(flow.id, step_key)
        if step is None:
            return self._abort(log, tenant_id, channel, sender_id, "step missing", flow_key=flow_key, step=step_key)

        expected = step.expected if isinstance(step.expected, dict) else {}
        parsed = parse_step_input(expected, user_input)
        if not parsed.ok:
            log.info("Invalid step reply, re-prompting", context={"flow_key": flow_key, "step": step_key})
            return FlowResult(reply=step_prompt(step, lang), handled=True)

        persist = expected.get("persist")
        if isinstance(persist, dict) and persist.get("key"):
            value = persist["value"] if "value" in persist else parsed.value
            self.memory_store.set(tenant_id, channel, sender_id, persist["key"], value)

        next_key = step.on_success_next_step
        if not next_key or next_key == TERMINAL_STEP:
            self.state_store.clear(tenant_id, channel, sender_id)
            complete_key = expected.get("persist_complete_key")
            if complete_key:
                self.memory_store.set(tenant_id, channel, sender_id, complete_key, True)
            log.info("Flow completed", context={"flow_key": flow_key, "last_step": step_key})
            return FlowResult(reply=None, handled=True)

        next_step = self.flows.get_step_by_key(flow.id, next_key)
        if next_step is None:
            return self._abort(log, tenant_id, channel, sender_id, "next step missing", flow_key=flow_key, step=next_key)

        self.state_store.set(tenant_id, channel, sender_id, flow.flow_key, next_step.step_key)
        log.info("Flow advanced", context={"flow_key": flow_key, "from": step_key, "to": next_key})
        return FlowResult(reply=step_prompt(next_step, lang), handled=True)
