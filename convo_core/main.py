from fastapi import FastAPI

from convo_core.config import settings
from convo_core.logging_config import setup_logging
from convo_core.routers import turn

setup_logging(settings.log_level)

app = FastAPI(
    title="Conversation Core",
    description="Flow engine, catalog resolver and intent matcher for multi-tenant chat assistants",
    version="0.1.0",
)

app.include_router(turn.router)


@app.get("/health")
def health():
    return {"status": "ok"}
