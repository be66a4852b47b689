from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from contextlib import asynccontextmanager
from typing import Optional

from size_server.errors import BoundsInverted, IdentityNotFound, UpstreamUnavailable
from size_server.routers.size import make_response, size_router
from size_server.services.random_source import NumpyRandomSource
from size_server.services.size_service import SizeService
from size_server.twitch_users import TwitchUserResolver
from size_server.load_secrets import (
    client_id,
    client_secret,
    log_level,
    random_seed,
    sweep_interval_minutes,
)

logging.basicConfig(level=log_level)


async def identity_not_found_handler(request: Request, exc: IdentityNotFound):
    return make_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "twitch returned no users")


async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable):
    return make_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def bounds_inverted_handler(request: Request, exc: BoundsInverted):
    logging.info(f"rejected bounds reset: {exc}")
    return make_response(status.HTTP_400_BAD_REQUEST, "bounds inverted")


def create_app(
    size_service: Optional[SizeService] = None,
    user_resolver: Optional[TwitchUserResolver] = None,
    sweep_minutes: int = sweep_interval_minutes,
) -> FastAPI:
    """Build the application around one SizeService that lives as long as the process

    Args:
        size_service (Optional[SizeService]): Game state, a fresh one if missing
        user_resolver (Optional[TwitchUserResolver]): Identity lookups, built from the environment if missing
        sweep_minutes (int): Interval of the viewer sweep job

    Returns:
        FastAPI: The application
    """
    size_service = size_service or SizeService(NumpyRandomSource(random_seed))
    user_resolver = user_resolver or TwitchUserResolver(client_id, client_secret)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Schedule the viewer sweep while the server is running."""
        scheduler = AsyncIOScheduler()
        # Records whose rate limit has elapsed are dropped
        scheduler.add_job(
            size_service.sweep,
            "interval",
            minutes=sweep_minutes,
        )
        scheduler.start()
        logging.info(f"[{app.state.started_at}] starting")
        try:
            yield
        finally:
            scheduler.shutdown()
            await user_resolver.aclose()
            logging.info("Stop Server")

    app = FastAPI(lifespan=lifespan)
    app.state.size_service = size_service
    app.state.user_resolver = user_resolver
    app.state.started_at = datetime.now(timezone.utc)
    app.add_exception_handler(IdentityNotFound, identity_not_found_handler)
    app.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)
    app.add_exception_handler(BoundsInverted, bounds_inverted_handler)
    app.include_router(size_router)
    return app


app = create_app()
