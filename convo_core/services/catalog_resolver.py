"""Answer catalog questions from tenant data.

A turn goes through need detection, the sticky reference shortcut, fuzzy search,
the no-match listing fallback, the ambiguity check and finally variant handling.
Nothing here invents a price, duration or link: every value comes from a row or
stays None. Catalog query failures degrade to the no-match path.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from convo_core.config import settings
from convo_core.logging_config import get_logger
from convo_core.models import Service, ServiceVariant
from convo_core.schemas.catalog import CatalogFacts, CatalogNeed, CatalogOption, CatalogResult
from convo_core.schemas.context import LastServiceRef, read_last_service_ref
from convo_core.services.catalog_rules import (
    detect_catalog_need,
    infer_size_token,
    infer_weight_lbs,
    is_plan,
    mentions_plans,
    mentions_variant_hint,
    pick_variant,
    variants_are_size_based,
)
from convo_core.services.catalog_store import CatalogStore, ScoredService
from convo_core.services.result import Result

logger = get_logger("catalog_resolver")

ASK_NAME = {
    "es": "¿Cuál servicio exactamente? Dime el nombre.",
    "en": "Which service exactly? Tell me the name.",
}
ASK_WHICH = {
    "es": "¿Cuál de estos? Dime el nombre del servicio.",
    "en": "Which one do you mean? Tell me the service name.",
}
ASK_SIZE = {
    "es": "Perfecto, ¿qué tamaño necesitas para {name}? (Pequeño / Mediano / Grande)",
    "en": "Got it, which size do you need for {name}? (Small / Medium / Large)",
}


def _text(lang: str, table: dict[str, str], **kwargs) -> str:
    return table.get(lang, table["es"]).format(**kwargs)


def _number(value) -> Optional[float]:
    return float(value) if value is not None else None


def _first(*values):
    for value in values:
        if value is not None and value != "":
            return value
    return None


def service_label(service: Service) -> str:
    return f"[{service.category}] {service.name}" if service.category else str(service.name)


def service_facts(service: Service) -> CatalogFacts:
    return CatalogFacts(
        kind="service",
        label=str(service.name),
        service_id=str(service.id),
        price=_number(service.price_base),
        currency=service.currency or None,
        duration_min=service.duration_min,
        description=service.description or None,
        url=service.service_url or None,
    )


def variant_facts(service: Service, variant: ServiceVariant) -> CatalogFacts:
    """A variant inherits any field it leaves empty from its service."""
    return CatalogFacts(
        kind="variant",
        label=f"{service.name} - {variant.variant_name}",
        service_id=str(service.id),
        variant_id=str(variant.id),
        price=_number(_first(variant.price, service.price_base)),
        currency=_first(variant.currency, service.currency),
        duration_min=_first(variant.duration_min, service.duration_min),
        description=_first(variant.description, service.description),
        url=_first(variant.variant_url, service.service_url),
    )


def variant_option(service: Service, variant: ServiceVariant) -> CatalogOption:
    return CatalogOption(
        label=str(variant.variant_name),
        kind="variant",
        service_id=str(service.id),
        variant_id=str(variant.id),
        price=_number(_first(variant.price, service.price_base)),
        currency=_first(variant.currency, service.currency),
        duration_min=_first(variant.duration_min, service.duration_min),
        description=_first(variant.description),
        url=_first(variant.variant_url, service.service_url),
    )


def service_option(service: Service) -> CatalogOption:
    return CatalogOption(
        label=service_label(service),
        kind="service",
        service_id=str(service.id),
        price=_number(service.price_base),
        currency=service.currency or None,
        duration_min=service.duration_min,
        description=service.description or None,
        url=service.service_url or None,
    )


def sticky_patch(facts: CatalogFacts, now: Optional[datetime] = None) -> dict[str, Any]:
    ref = LastServiceRef(
        kind="variant" if facts.kind == "variant" else "service",
        label=facts.label,
        service_id=facts.service_id,
        variant_id=facts.variant_id,
        saved_at=now or datetime.now(timezone.utc),
    )
    return {"last_service_ref": ref.model_dump(mode="json")}


class CatalogResolver:
    def __init__(
        self,
        catalog_store: CatalogStore,
        min_confidence: Optional[float] = None,
        ambiguity_gap: Optional[float] = None,
        max_options: Optional[int] = None,
        list_limit: Optional[int] = None,
        search_limit: Optional[int] = None,
        sticky_ttl_minutes: Optional[int] = None,
    ):
        self.store = catalog_store
        self.min_confidence = settings.catalog_min_confidence if min_confidence is None else min_confidence
        self.ambiguity_gap = settings.catalog_ambiguity_gap if ambiguity_gap is None else ambiguity_gap
        self.max_options = settings.catalog_max_options if max_options is None else max_options
        self.list_limit = settings.catalog_list_limit if list_limit is None else list_limit
        self.search_limit = settings.catalog_search_limit if search_limit is None else search_limit
        self.sticky_ttl_minutes = settings.sticky_ref_ttl_minutes if sticky_ttl_minutes is None else sticky_ttl_minutes

    def resolve(
        self,
        tenant_id: str,
        user_input: str,
        lang: str = "es",
        conversation_context: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> CatalogResult:
        text = (user_input or "").strip()
        now = now or datetime.now(timezone.utc)

        ref = read_last_service_ref(conversation_context)
        fresh_ref = ref if ref is not None and ref.service_id and ref.is_fresh(self.sticky_ttl_minutes, now) else None
        has_hint = mentions_variant_hint(text)

        need = detect_catalog_need(text)
        if need is None:
            if not (fresh_ref and has_hint):
                return CatalogResult.miss()
            need = CatalogNeed.ANY

        if fresh_ref and has_hint:
            sticky = self._resolve_sticky(tenant_id, text, need, fresh_ref, now)
            if sticky is not None:
                return sticky

        candidates = self._search(tenant_id, text)
        if not candidates:
            return self._no_match(tenant_id, text, need, lang)

        top = candidates[0]
        second = candidates[1] if len(candidates) > 1 else None
        if self._is_ambiguous(top.score, second.score if second else None):
            logger.info(
                "Ambiguous catalog match",
                extra={
                    "context": {
                        "tenant_id": tenant_id,
                        "top": top.score,
                        "second": second.score if second else None,
                    }
                },
            )
            options = [service_option(c.service) for c in candidates[: self.max_options]]
            return CatalogResult(
                hit=True,
                status="needs_clarification",
                need=need,
                ask=_text(lang, ASK_WHICH),
                options=options,
            )

        return self._resolve_service(top.service, text, need, lang, has_hint, now)

    def _is_ambiguous(self, top: float, second: Optional[float]) -> bool:
        if top < self.min_confidence:
            return True
        return second is not None and second >= self.min_confidence and top - second < self.ambiguity_gap

    def _resolve_sticky(
        self, tenant_id: str, text: str, need: CatalogNeed, ref: LastServiceRef, now: datetime
    ) -> Optional[CatalogResult]:
        variants = self._checked(self.store.get_variants(ref.service_id), tenant_id, "sticky variants") or []
        if not variants:
            return None
        service = self._checked(self.store.get_service(tenant_id, ref.service_id), tenant_id, "sticky service")
        if service is None:
            return None

        picked = pick_variant(variants, infer_size_token(text), infer_weight_lbs(text))
        facts = variant_facts(service, picked)
        logger.debug(
            "Resolved from sticky reference",
            extra={"context": {"tenant_id": tenant_id, "service_id": ref.service_id, "variant_id": facts.variant_id}},
        )
        return CatalogResult(hit=True, status="resolved", need=need, facts=facts, ctx_patch=sticky_patch(facts, now))

    def _search(self, tenant_id: str, text: str) -> list[ScoredService]:
        if not text:
            return []
        return self._checked(self.store.search_services(tenant_id, text, self.search_limit), tenant_id, "search") or []

    def _no_match(self, tenant_id: str, text: str, need: CatalogNeed, lang: str) -> CatalogResult:
        wants_plans = mentions_plans(text)
        if need in (CatalogNeed.LIST, CatalogNeed.PRICE) or wants_plans:
            listing = self._listing(tenant_id, need, wants_plans)
            if listing:
                label = "Planes" if lang != "en" else "Plans"
                if need == CatalogNeed.LIST and not wants_plans:
                    label = "Servicios" if lang != "en" else "Services"
                facts = CatalogFacts(kind="options", label=label, options=listing)
                return CatalogResult(hit=True, status="resolved", need=need, facts=facts, options=listing)

        return CatalogResult(hit=True, status="no_match", need=need, ask=_text(lang, ASK_NAME))

    def _listing(self, tenant_id: str, need: CatalogNeed, wants_plans: bool) -> list[CatalogOption]:
        """Tenant-wide list with plans first. A bare price question only lists plans."""
        services = self._checked(self.store.list_services(tenant_id, self.list_limit), tenant_id, "list") or []
        plans = [s for s in services if is_plan(s)]
        others = [s for s in services if not is_plan(s)]
        if need == CatalogNeed.PRICE and not wants_plans:
            ordered = plans
        else:
            ordered = plans + others
        return [service_option(s) for s in ordered[: self.max_options]]

    def _resolve_service(
        self, service: Service, text: str, need: CatalogNeed, lang: str, has_hint: bool, now: datetime
    ) -> CatalogResult:
        variants = self._checked(self.store.get_variants(service.id), service.tenant_id, "variants") or []

        if not variants:
            facts = service_facts(service)
            return CatalogResult(hit=True, status="resolved", need=need, facts=facts, ctx_patch=sticky_patch(facts, now))

        if not variants_are_size_based(service, variants):
            options = [variant_option(service, v) for v in variants[: self.max_options]]
            facts = CatalogFacts(
                kind="options",
                label=str(service.name),
                service_id=str(service.id),
                currency=service.currency or None,
                description=service.description or None,
                url=service.service_url or None,
                options=options,
            )
            return CatalogResult(hit=True, status="resolved", need=need, facts=facts, options=options)

        if not has_hint:
            ref = CatalogFacts(kind="service", label=str(service.name), service_id=str(service.id))
            return CatalogResult(
                hit=True,
                status="needs_clarification",
                need=need,
                ask=_text(lang, ASK_SIZE, name=service.name),
                ctx_patch=sticky_patch(ref, now),
            )

        picked = pick_variant(variants, infer_size_token(text), infer_weight_lbs(text))
        facts = variant_facts(service, picked)
        return CatalogResult(hit=True, status="resolved", need=need, facts=facts, ctx_patch=sticky_patch(facts, now))

    def _checked(self, result: Result, tenant_id: str, operation: str):
        if result.ok:
            return result.value
        logger.warning(
            "Catalog lookup failed, degrading",
            extra={"context": {"tenant_id": tenant_id, "operation": operation, "code": result.error_code}},
        )
        return None
