"""
Reactions service FastAPI application.

Receives listener events and charges every reaction through the payment
authority before relaying it to the song channel.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status

from reaction_payments import __version__
from reaction_payments.client.http_client import PaymentAuthorityClient
from reaction_payments.client.orchestrator import build_orchestrator
from reaction_payments.config import Settings, get_settings
from reaction_payments.monitoring.logging import setup_logging
from reaction_payments.reactions.models import SongEvent, SongEventType
from reaction_payments.reactions.relay import InMemoryBroadcaster, ReactionRelay

from .main import install_common_handlers
from .schemas import ListenersResponse, ReactionResponse

logger = structlog.get_logger(__name__)

reactions_router = APIRouter(prefix="/reactions", tags=["reactions"])


def get_relay(request: Request) -> ReactionRelay:
    """Relay owned by the running application."""
    return request.app.state.relay


def _require_type(event: SongEvent, expected: SongEventType) -> None:
    if event.event_type is not expected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected a {expected.value} event, got {event.event_type.value}",
        )


@reactions_router.post(
    "/play",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start listening",
    description="Register a listener on a song channel",
)
async def play(event: SongEvent, relay: ReactionRelay = Depends(get_relay)) -> Dict[str, Any]:
    _require_type(event, SongEventType.PLAY)
    await relay.on_play(event)
    return {"song_id": event.song_id, "listeners": sorted(relay.registry.listeners(event.song_id))}


@reactions_router.post(
    "/stop",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Stop listening",
    description="Remove a listener from a song channel",
)
async def stop(event: SongEvent, relay: ReactionRelay = Depends(get_relay)) -> Dict[str, Any]:
    _require_type(event, SongEventType.PAUSE)
    await relay.on_stop(event)
    return {"song_id": event.song_id, "listeners": sorted(relay.registry.listeners(event.song_id))}


@reactions_router.post(
    "/react",
    response_model=ReactionResponse,
    summary="Send a reaction",
    description="Charge a reaction, then broadcast it or notify the sender privately",
)
async def react(event: SongEvent, relay: ReactionRelay = Depends(get_relay)) -> Dict[str, Any]:
    _require_type(event, SongEventType.REACTION)
    outcome = await relay.on_reaction(event)
    return {
        "delivery": outcome.delivery,
        "result": outcome.result,
        "notification": outcome.notification,
    }


@reactions_router.get(
    "/listeners/{song_id}",
    response_model=ListenersResponse,
    summary="List listeners",
)
async def listeners(song_id: str, relay: ReactionRelay = Depends(get_relay)) -> Dict[str, Any]:
    return {"song_id": song_id, "listeners": sorted(relay.registry.listeners(song_id))}


def create_reactions_app(
    settings: Optional[Settings] = None,
    relay: Optional[ReactionRelay] = None,
) -> FastAPI:
    """
    Build the reactions application.

    Without an explicit relay, charges go to the payment authority over HTTP
    and deliveries are recorded in memory.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    client: Optional[PaymentAuthorityClient] = None
    if relay is None:
        client = PaymentAuthorityClient(settings.payment_authority_url, settings.http_timeout)
        relay = ReactionRelay(build_orchestrator(client, settings), InMemoryBroadcaster())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            payment_authority_url=settings.payment_authority_url,
            max_attempts=settings.max_attempts,
        )
        yield
        if client is not None:
            await client.close()
        logger.info("application_shutdown")

    app = FastAPI(
        title="Reactions Service",
        description="Relays paid song reactions to listeners.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = relay

    install_common_handlers(app)
    app.include_router(reactions_router)
    return app


app = create_reactions_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "reaction_payments.api.reactions:app",
        host=settings.api_host,
        port=settings.reactions_port,
        log_level=settings.log_level.lower(),
    )
