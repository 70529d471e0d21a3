from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel


class CatalogNeed(str, Enum):
    PRICE = "price"
    INCLUDES = "includes"
    DURATION = "duration"
    LINK = "link"
    LIST = "list"
    ANY = "any"


class CatalogOption(BaseModel):
    label: str
    kind: Literal["service", "variant"] = "service"
    service_id: str
    variant_id: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    duration_min: Optional[int] = None
    description: Optional[str] = None
    url: Optional[str] = None


class CatalogFacts(BaseModel):
    kind: Literal["service", "variant", "options"]
    label: str
    service_id: Optional[str] = None
    variant_id: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    duration_min: Optional[int] = None
    description: Optional[str] = None
    url: Optional[str] = None
    options: list[CatalogOption] = []


class CatalogResult(BaseModel):
    hit: bool
    status: Optional[Literal["resolved", "needs_clarification", "no_match"]] = None
    need: Optional[CatalogNeed] = None
    facts: Optional[CatalogFacts] = None
    ask: Optional[str] = None
    options: list[CatalogOption] = []
    ctx_patch: Optional[dict[str, Any]] = None

    @classmethod
    def miss(cls) -> "CatalogResult":
        return cls(hit=False)
