"""
TOKEN PULSE — FastAPI Application
Token listing endpoint, price-update WebSocket channel, /healthz and /metrics.
"""
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from token_pulse.api.broadcast import Broadcaster, PRICE_UPDATE_EVENT
from token_pulse.api.query_service import TokenQueryService
from token_pulse.config.settings import get_settings
from token_pulse.data.adapters.factory import create_source_adapters
from token_pulse.data.cache.token_cache import TokenCache, TOKENS_ALL_KEY, get_token_cache
from token_pulse.data.http_client import RetryingHttpClient
from token_pulse.engines.refresh_scheduler import RefreshScheduler
from token_pulse.utils.helpers import utc_timestamp
from token_pulse.utils.logger import get_logger, setup_logging

logger = get_logger("api")


async def _build_components(app: FastAPI) -> None:
    """Wire the pipeline: one shared HTTP client, two sources, cache, hub."""
    http_client = RetryingHttpClient()
    pair_source, registry_source = create_source_adapters(http_client)
    for source in (pair_source, registry_source):
        await source.connect()
    cache = get_token_cache()
    broadcaster = Broadcaster()

    app.state.http_client = http_client
    app.state.sources = (pair_source, registry_source)
    app.state.cache = cache
    app.state.broadcaster = broadcaster
    app.state.scheduler = RefreshScheduler(pair_source, registry_source, cache, broadcaster)
    # Ad-hoc search goes through the same pair-search contract as the scheduler
    app.state.query_service = TokenQueryService(cache, pair_source)


async def _release_components(app: FastAPI) -> None:
    for source in getattr(app.state, "sources", ()):
        await source.disconnect()
    http_client: Optional[RetryingHttpClient] = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.close()
    cache: Optional[TokenCache] = getattr(app.state, "cache", None)
    if cache is not None:
        await cache.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    setup_logging(instance_id=app.state.instance_id)
    settings = get_settings()
    app.state.started_at = utc_timestamp()

    owns_components = not getattr(app.state, "injected", False)
    if owns_components:
        await _build_components(app)

    logger.info("token_pulse_starting", version=settings.version, instance=app.state.instance_id)
    if app.state.scheduler is not None:
        await app.state.scheduler.start()
    logger.info("token_pulse_ready")

    yield

    logger.info("token_pulse_shutting_down")
    if app.state.scheduler is not None:
        await app.state.scheduler.stop()
    if owns_components:
        await _release_components(app)


def create_app(
    query_service: Optional[TokenQueryService] = None,
    broadcaster: Optional[Broadcaster] = None,
    scheduler: Optional[Any] = None,
    cache: Optional[TokenCache] = None,
) -> FastAPI:
    """
    Build the application. Passing components skips the default wiring in
    lifespan; the caller then owns their lifecycle.
    """
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Aggregated Solana token prices with live updates",
        version=settings.version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.instance_id = str(uuid.uuid4())[:8]
    app.state.started_at = None
    app.state.injected = query_service is not None
    if query_service is not None:
        app.state.query_service = query_service
        app.state.broadcaster = broadcaster or Broadcaster()
        app.state.scheduler = scheduler
        app.state.cache = cache or query_service.cache

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    # ─── Health & Metrics ───────────────────────────────────────────

    @app.get("/healthz", tags=["System"])
    async def health_check(request: Request):
        """Fast health check endpoint for load balancers and monitoring."""
        return JSONResponse(
            status_code=200,
            content={
                "status": "healthy",
                "instance": request.app.state.instance_id,
                "uptime_since": request.app.state.started_at,
                "timestamp": utc_timestamp(),
            },
        )

    @app.get("/metrics", tags=["System"])
    async def metrics(request: Request):
        """Pipeline statistics."""
        settings = get_settings()
        state = request.app.state
        scheduler = getattr(state, "scheduler", None)
        cache = getattr(state, "cache", None)
        broadcaster = getattr(state, "broadcaster", None)
        return {
            "app": {
                "name": settings.app_name,
                "version": settings.version,
                "instance_id": state.instance_id,
                "started_at": state.started_at,
            },
            "scheduler": getattr(scheduler, "stats", {}),
            "cache": cache.stats if cache is not None else {},
            "broadcast": broadcaster.stats if broadcaster is not None else {},
            "timestamp": utc_timestamp(),
        }

    # ─── Tokens ─────────────────────────────────────────────────────

    @app.get("/tokens", tags=["Tokens"])
    async def get_tokens(
        request: Request,
        sort_by: Optional[str] = Query(default=None),
        limit: Optional[str] = Query(default=None),
        cursor: Optional[str] = Query(default=None),
        q: Optional[str] = Query(default=None),
    ):
        """Paginated, sortable token listing; q switches to a live search."""
        try:
            service: TokenQueryService = request.app.state.query_service
            page = await service.list_tokens(sort_by=sort_by, limit=limit, cursor=cursor, q=q)
            return page.to_dict()
        except Exception as e:
            logger.exception("tokens_request_failed", sort_by=sort_by, cursor=cursor, q=q)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "details": str(e)},
            )

    # ─── Live Updates ───────────────────────────────────────────────

    @app.websocket("/ws")
    async def price_updates(websocket: WebSocket):
        """price-update channel: the full snapshot on connect and on every tick."""
        broadcaster: Broadcaster = websocket.app.state.broadcaster
        cache: TokenCache = websocket.app.state.cache
        await websocket.accept()
        await broadcaster.register(websocket)
        try:
            current = await cache.get(TOKENS_ALL_KEY)
            await broadcaster.send(websocket, PRICE_UPDATE_EVENT, current or [])
            while True:
                # Clients do not send anything meaningful; this detects disconnects
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await broadcaster.unregister(websocket)


app = create_app()
