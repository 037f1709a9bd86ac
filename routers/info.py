from fastapi import APIRouter, Request

from constants import PORT, SCHEME
from logging_config import get_logger
from network import get_network_url
from schemas.info import InfoResponse

logger = get_logger(__name__)

info_router = APIRouter(prefix="/api", tags=["info"])


@info_router.get("/info", response_model=InfoResponse)
async def get_info(request: Request):
    """URL other devices on the network should open to reach this server."""
    port = request.url.port or PORT
    network_url = get_network_url(port, SCHEME)
    logger.debug(f"Info request from {request.client.host if request.client else 'unknown'}: {network_url}")
    return InfoResponse(networkUrl=network_url)
