"""Fakes and builders shared by the test modules."""

from types import SimpleNamespace

from convo_core.services.catalog_rules import is_plan
from convo_core.services.catalog_store import CatalogStore, ScoredService
from convo_core.services.flow_repository import FlowRepository
from convo_core.services.memory_store import ClientMemoryStore
from convo_core.services.result import Result
from convo_core.services.state_store import ConversationStateStore


class InMemoryStateStore(ConversationStateStore):
    """State store with its storage primitives backed by a dict."""

    def __init__(self):
        super().__init__(db=None)
        self.rows = {}

    def _fetch(self, tenant_id, channel, sender_id):
        return self.rows.get((tenant_id, channel, sender_id))

    def _write(self, tenant_id, channel, sender_id, active_flow, active_step, context):
        self.rows[(tenant_id, channel, sender_id)] = SimpleNamespace(
            active_flow=active_flow, active_step=active_step, context=dict(context)
        )

    def _delete(self, tenant_id, channel, sender_id):
        self.rows.pop((tenant_id, channel, sender_id), None)


class InMemoryMemoryStore(ClientMemoryStore):
    def __init__(self):
        super().__init__(db=None)
        self.values = {}

    def _fetch(self, tenant_id, channel, sender_id, key):
        if (tenant_id, channel, sender_id, key) not in self.values:
            return None
        return SimpleNamespace(value=self.values[(tenant_id, channel, sender_id, key)])

    def _write(self, tenant_id, channel, sender_id, key, value):
        self.values[(tenant_id, channel, sender_id, key)] = value


class FakeFlowRepository(FlowRepository):
    def __init__(self, flows=(), steps=()):
        super().__init__(db=None)
        self.flows = list(flows)
        self.steps = list(steps)

    def get_flow_by_key(self, tenant_id, flow_key):
        return next((f for f in self.flows if f.tenant_id == tenant_id and f.flow_key == flow_key), None)

    def get_step_by_key(self, flow_id, step_key):
        return next((s for s in self.steps if s.flow_id == flow_id and s.step_key == step_key), None)

    def get_first_step(self, flow_id):
        steps = sorted((s for s in self.steps if s.flow_id == flow_id), key=lambda s: (s.order_index, s.id))
        return steps[0] if steps else None


class FakeCatalogStore(CatalogStore):
    """Catalog store serving canned rows; any operation can be made to fail."""

    def __init__(self, scored=(), services=(), variants=None, failures=None):
        super().__init__(db=None, timeout_ms=1500)
        self.scored = list(scored)
        self.services = list(services)
        self.variants = variants or {}
        self.failures = failures or {}
        self.calls = []

    def _answer(self, operation, value):
        self.calls.append(operation)
        if operation in self.failures:
            return Result.failure("boom", self.failures[operation])
        return Result.success(value)

    def search_services(self, tenant_id, query, limit=5):
        return self._answer("search_services", self.scored[:limit])

    def list_services(self, tenant_id, limit):
        ordered = sorted(self.services, key=lambda s: not is_plan(s))
        return self._answer("list_services", ordered[:limit])

    def get_service(self, tenant_id, service_id):
        every = self.services + [s.service for s in self.scored]
        found = next((s for s in every if str(s.id) == str(service_id)), None)
        return self._answer("get_service", found)

    def get_variants(self, service_id):
        return self._answer("get_variants", list(self.variants.get(str(service_id), [])))


def make_service(id, name, **fields):
    defaults = dict(
        tenant_id="t1",
        description=None,
        category=None,
        service_type="service",
        price_base=None,
        currency=None,
        duration_min=None,
        service_url=None,
        active=True,
    )
    defaults.update(fields)
    return SimpleNamespace(id=id, name=name, **defaults)


def make_variant(id, service_id, variant_name, **fields):
    defaults = dict(
        description=None,
        price=None,
        currency=None,
        duration_min=None,
        variant_url=None,
        size_token=None,
        min_weight_lbs=None,
        max_weight_lbs=None,
        active=True,
    )
    defaults.update(fields)
    return SimpleNamespace(id=id, service_id=service_id, variant_name=variant_name, **defaults)


def scored(service, score):
    return ScoredService(service=service, score=score)


