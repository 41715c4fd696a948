import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from formlytics.api.middleware import access_gate_middleware
from formlytics.api.routes.billing import router as billing_router
from formlytics.api.routes.webhooks import router as webhooks_router
from formlytics.core.config import settings
from formlytics.core.paddle import PaddleClient


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=settings.log_level)
    yield


app = FastAPI(title="Formlytics", lifespan=lifespan)
app.state.paddle = PaddleClient.from_settings(settings)
app.middleware("http")(access_gate_middleware)
app.include_router(billing_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
