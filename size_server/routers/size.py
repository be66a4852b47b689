import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional, TypeVar

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from size_server.models.dc_models import SizeModel
from size_server.models.schema_models import BoonKind
from size_server.services.size_service import SizeService
from size_server.twitch_users import TwitchUserResolver

size_router = APIRouter()

T = TypeVar("T")


def get_size_service(request: Request) -> SizeService:
    return request.app.state.size_service


def get_user_resolver(request: Request) -> TwitchUserResolver:
    return request.app.state.user_resolver


def ok_response(size: int) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_200_OK, content=SizeModel(size=size).model_dump())


def make_response(status_code: int, message: str) -> JSONResponse:
    body = SizeModel(size=status_code, is_message=True, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def run_blocking(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a lock-taking SizeService call off the event loop"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


class SizeAPI:
    @staticmethod
    @size_router.get("/cs", response_class=PlainTextResponse)
    async def legacy(service: SizeService = Depends(get_size_service)) -> str:
        """Stateless 1-100 roll kept for old chat commands"""
        return str(await run_blocking(service.generator.random_source.randint, 1, 100))

    @staticmethod
    @size_router.get("/size", response_model=SizeModel)
    async def size(
        viewer: str,
        streamer: str,
        time_limit: Optional[int] = None,
        service: SizeService = Depends(get_size_service),
        resolver: TwitchUserResolver = Depends(get_user_resolver),
    ):
        """Roll a size for a viewer in a streamer's chat

        Args:
            viewer (str): Login name of the viewer
            streamer (str): Login name of the streamer
            time_limit (Optional[int]): Seconds during which the previous size is repeated
        """
        viewer_identity = await resolver.resolve_identity(viewer)
        streamer_identity = await resolver.resolve_identity(streamer)
        size = await run_blocking(
            service.resolve_size, viewer_identity, streamer_identity, time_limit
        )
        return ok_response(size)


class ChannelAPI:
    @staticmethod
    @size_router.put("/reset", response_model=SizeModel)
    async def change_bounds(
        streamer: str,
        upper: Optional[int] = None,
        lower: Optional[int] = None,
        service: SizeService = Depends(get_size_service),
        resolver: TwitchUserResolver = Depends(get_user_resolver),
    ):
        streamer_identity = await resolver.resolve_identity(streamer)
        await run_blocking(service.reset_bounds, streamer_identity, upper=upper, lower=lower)
        return make_response(status.HTTP_200_OK, "size reset")

    @staticmethod
    async def _apply_boon(
        kind: BoonKind,
        streamer: str,
        viewer: Optional[str],
        value: Optional[int],
        time_limit: Optional[int],
        service: SizeService,
        resolver: TwitchUserResolver,
    ) -> None:
        streamer_identity = await resolver.resolve_identity(streamer)
        viewer_identity = None
        if viewer is not None:
            viewer_identity = await resolver.resolve_identity(viewer)
        await run_blocking(
            service.apply_boon,
            streamer_identity,
            kind,
            viewer=viewer_identity,
            fixed_value=value,
            ttl_seconds=time_limit,
        )

    @staticmethod
    @size_router.get("/bless", response_model=SizeModel)
    async def bless(
        streamer: str,
        viewer: Optional[str] = None,
        value: Optional[int] = None,
        time_limit: Optional[int] = None,
        service: SizeService = Depends(get_size_service),
        resolver: TwitchUserResolver = Depends(get_user_resolver),
    ):
        """Bless a viewer, or the next viewer to roll when no viewer is given

        Args:
            streamer (str): Login name of the streamer
            viewer (Optional[str]): Login name of the viewer
            value (Optional[int]): Size to force, the current upper bound if missing
            time_limit (Optional[int]): Seconds the blessing lasts, a single roll if missing
        """
        await ChannelAPI._apply_boon(
            BoonKind.blessed, streamer, viewer, value, time_limit, service, resolver
        )
        return make_response(status.HTTP_200_OK, "user blessed")

    @staticmethod
    @size_router.get("/curse", response_model=SizeModel)
    async def curse(
        streamer: str,
        viewer: Optional[str] = None,
        value: Optional[int] = None,
        time_limit: Optional[int] = None,
        service: SizeService = Depends(get_size_service),
        resolver: TwitchUserResolver = Depends(get_user_resolver),
    ):
        """Curse a viewer, or the next viewer to roll when no viewer is given

        Args:
            streamer (str): Login name of the streamer
            viewer (Optional[str]): Login name of the viewer
            value (Optional[int]): Size to force, the current lower bound if missing
            time_limit (Optional[int]): Seconds the curse lasts, a single roll if missing
        """
        await ChannelAPI._apply_boon(
            BoonKind.cursed, streamer, viewer, value, time_limit, service, resolver
        )
        return make_response(status.HTTP_200_OK, "user cursed")


class MaintenanceAPI:
    @staticmethod
    @size_router.post("/clean", response_model=SizeModel)
    async def clean_viewers(service: SizeService = Depends(get_size_service)):
        await run_blocking(service.sweep)
        return make_response(status.HTTP_200_OK, "viewers purged")

    @staticmethod
    @size_router.get("/status", response_class=PlainTextResponse)
    async def dump_status(service: SizeService = Depends(get_size_service)) -> str:
        return await run_blocking(service.dump_status)

    @staticmethod
    @size_router.get("/up", response_class=PlainTextResponse)
    async def uptime(request: Request) -> str:
        started_at: datetime = request.app.state.started_at
        diff = datetime.now(timezone.utc) - started_at
        total_seconds = int(diff.total_seconds())
        days = diff.days
        hours = total_seconds // 3600 % 24
        minutes = total_seconds // 60 % 60
        seconds = total_seconds % 60
        logging.debug(f"uptime requested, started at {started_at}")
        return f"{days}d {hours}h {minutes}m {seconds}s"
