import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from src.auth import router as auth_router
from src.llm import create_model
from src.llm.router import router as ai_router
from src.maintenance.router import router as maintenance_router
from src.planning import create_plan_strategy
from src.vehicle import (
    create_identity_client,
    create_telemetry_client,
    create_token_exchange,
)
from src.vehicle.router import router as vehicle_router

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    async with httpx.AsyncClient() as client:
        app.state.identity = create_identity_client(client)
        app.state.telemetry = create_telemetry_client(client)
        app.state.token_exchange = create_token_exchange(client)

        model = create_model()
        if model is None:
            logger.warning("GOOGLE_API_KEY not set - AI features are disabled")
        app.state.model = model
        app.state.plan_strategy = create_plan_strategy(model)
        yield


app = FastAPI(title="odoreport", lifespan=lifespan)
app.include_router(auth_router)
app.include_router(vehicle_router)
app.include_router(maintenance_router)
app.include_router(ai_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
