from typing import Any, Literal, Optional

from pydantic import BaseModel

from convo_core.schemas.catalog import CatalogResult


class TurnRequest(BaseModel):
    tenant_id: str
    channel: str = "whatsapp"
    sender_id: str
    content: str
    lang: Literal["es", "en"] = "es"


class TurnResponse(BaseModel):
    reply: Optional[str] = None
    handled: bool


class CatalogRequest(TurnRequest):
    pass


class CatalogResponse(BaseModel):
    result: CatalogResult
    prompt: Optional[str] = None


class IntentMatchRequest(BaseModel):
    tenant_id: str
    channel: str = "whatsapp"
    content: str
    lang: Optional[str] = None


class IntentMatchResponse(BaseModel):
    match: Optional[dict[str, Any]] = None
