import logging

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from src.base.dependencies import get_token_exchange
from src.vehicle.interface import PlatformError, TokenExchange

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


async def get_bearer_token(authorization: str = Header("")) -> str:
    """Return the opaque bearer credential; only its presence is checked."""
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise HTTPException(
            status_code=401, detail="Missing or invalid Authorization header"
        )
    return token.strip()


class VehicleTokenRequest(BaseModel):
    token_id: int


class VehicleTokenResponse(BaseModel):
    token_id: int
    token: str


@router.post("/vehicle-token", response_model=VehicleTokenResponse)
async def exchange_vehicle_token(
    body: VehicleTokenRequest,
    developer_token: str = Depends(get_bearer_token),
    exchange: TokenExchange = Depends(get_token_exchange),
) -> VehicleTokenResponse:
    try:
        token = await exchange.get_vehicle_token(body.token_id, developer_token)
    except (httpx.HTTPError, PlatformError):
        logger.exception("Failed to get vehicle token for %s", body.token_id)
        raise HTTPException(
            status_code=502,
            detail=f"Failed to get vehicle access for token {body.token_id}",
        )
    return VehicleTokenResponse(token_id=body.token_id, token=token)
