from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.db import async_session
from src.llm.interface import GenerativeModel
from src.planning.interface import PlanStrategy
from src.vehicle.interface import IdentityClient, TelemetryClient, TokenExchange


async def get_session() -> AsyncGenerator[AsyncSession]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Clients are built once in the app lifespan and shared by every request.


def get_identity_client(request: Request) -> IdentityClient:
    return request.app.state.identity


def get_telemetry_client(request: Request) -> TelemetryClient:
    return request.app.state.telemetry


def get_token_exchange(request: Request) -> TokenExchange:
    return request.app.state.token_exchange


def get_model(request: Request) -> GenerativeModel | None:
    return request.app.state.model


def get_plan_strategy(request: Request) -> PlanStrategy:
    return request.app.state.plan_strategy
