"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

FastAPI application factory.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from rangemarket import __version__
from rangemarket.config import settings
from rangemarket.utils import configure_logging
from rangemarket.api.routes_health import router as health_router
from rangemarket.api.routes_markets import router as markets_router
from rangemarket.api.routes_rewards import router as rewards_router


def create_app() -> FastAPI:
    """
    Create FastAPI application.

    Routers: /healthz, /rewards (stateless preview) and /markets
    (mirrored markets, resolution and payouts).

    Returns:
        FastAPI app instance
    """
    configure_logging()

    app = FastAPI(
        title="RANGEMARKET",
        description=(
            "Range prediction markets. Each bet names a number; at resolution "
            "the pool is split in proportion to 1 / (|prediction - actual| + 1)."
        ),
        version=__version__,
        default_response_class=ORJSONResponse,
    )

    origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (health_router, rewards_router, markets_router):
        app.include_router(router)

    @app.get("/")
    async def root():
        """Service banner with the active reward settings."""
        return {
            "name": "RANGEMARKET",
            "version": __version__,
            "formula": "accuracy = 1 / (distance + 1)",
            "reward_quantum": str(settings.reward_quantum),
            "min_participants": settings.min_participants,
            "platform_fee_bps": settings.platform_fee_bps,
        }

    return app


app = create_app()
