from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from sqlalchemy import case, func, or_, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from convo_core.config import settings
from convo_core.logging_config import get_logger
from convo_core.models import Service, ServiceVariant
from convo_core.services.catalog_rules import plan_name_regex
from convo_core.services.result import FailureCode, Result

logger = get_logger("catalog_store")

T = TypeVar("T")

QUERY_CANCELED_PGCODE = "57014"


@dataclass(frozen=True)
class ScoredService:
    service: Service
    score: float


class CatalogStore:
    """Read access to a tenant's services and variants.

    Every query runs in a savepoint under a local statement_timeout, so a slow or
    failing catalog query comes back as a failed Result and leaves the outer
    transaction usable.
    """

    def __init__(self, db: Optional[Session] = None, timeout_ms: Optional[int] = None):
        self.db = db
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.catalog_query_timeout_ms

    def search_services(self, tenant_id: str, query: str, limit: int = 5) -> Result[list[ScoredService]]:
        """Trigram search (pg_trgm) over name and description, best first."""
        description = func.coalesce(Service.description, "")
        score = func.greatest(func.similarity(Service.name, query), func.similarity(description, query)).label("score")

        def run() -> list[ScoredService]:
            rows = (
                self.db.query(Service, score)
                .filter(
                    Service.tenant_id == tenant_id,
                    Service.active.is_(True),
                    or_(Service.name.op("%")(query), description.op("%")(query)),
                )
                .order_by(score.desc(), Service.name.asc())
                .limit(limit)
                .all()
            )
            return [ScoredService(service=service, score=float(value or 0)) for service, value in rows]

        return self._run("search_services", run)

    def list_services(self, tenant_id: str, limit: int) -> Result[list[Service]]:
        """Active services, plans first, then most recently updated."""
        pattern = plan_name_regex()
        plan_rank = case(
            (
                or_(
                    func.lower(func.coalesce(Service.service_type, "")) == "plan",
                    Service.name.op("~*")(pattern),
                    func.coalesce(Service.category, "").op("~*")(pattern),
                ),
                0,
            ),
            else_=1,
        )

        def run() -> list[Service]:
            return (
                self.db.query(Service)
                .filter(Service.tenant_id == tenant_id, Service.active.is_(True))
                .order_by(plan_rank, Service.updated_at.desc().nullslast(), Service.name.asc())
                .limit(limit)
                .all()
            )

        return self._run("list_services", run)

    def get_service(self, tenant_id: str, service_id) -> Result[Optional[Service]]:
        def run() -> Optional[Service]:
            return (
                self.db.query(Service)
                .filter(Service.tenant_id == tenant_id, Service.id == int(service_id), Service.active.is_(True))
                .first()
            )

        return self._run("get_service", run)

    def get_variants(self, service_id) -> Result[list[ServiceVariant]]:
        size_rank = case(
            {"small": 1, "medium": 2, "large": 3, "xl": 4},
            value=ServiceVariant.size_token,
            else_=99,
        )

        def run() -> list[ServiceVariant]:
            return (
                self.db.query(ServiceVariant)
                .filter(ServiceVariant.service_id == int(service_id), ServiceVariant.active.is_(True))
                .order_by(size_rank, ServiceVariant.variant_name.asc())
                .all()
            )

        return self._run("get_variants", run)

    def _run(self, operation: str, query: Callable[[], T]) -> Result[T]:
        try:
            with self.db.begin_nested():
                previous = self.db.execute(text("SELECT current_setting('statement_timeout')")).scalar()
                self._set_timeout(f"{int(self.timeout_ms)}ms")
                value = query()
                self._set_timeout(previous or "0")
            return Result.success(value)
        except OperationalError as exc:
            pgcode = getattr(exc.orig, "pgcode", None)
            code = FailureCode.TIMEOUT if pgcode == QUERY_CANCELED_PGCODE else FailureCode.DB_ERROR
            logger.warning(
                "Catalog query failed",
                extra={"context": {"operation": operation, "code": code.value, "timeout_ms": self.timeout_ms}},
            )
            return Result.failure(str(exc), code)
        except ValueError as exc:
            return Result.failure(str(exc), FailureCode.INVALID_INPUT)
        except SQLAlchemyError as exc:
            logger.warning(
                "Catalog query failed",
                extra={"context": {"operation": operation, "code": FailureCode.DB_ERROR.value, "error": str(exc)}},
            )
            return Result.failure(str(exc), FailureCode.DB_ERROR)

    def _set_timeout(self, value: str) -> None:
        self.db.execute(text("SELECT set_config('statement_timeout', :value, true)"), {"value": value})
