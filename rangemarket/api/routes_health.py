"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Liveness check.
"""

from fastapi import APIRouter

from rangemarket import __version__
from rangemarket.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    """Report that the process is up. Does not touch the database."""
    return HealthResponse(status="OK", version=__version__)
