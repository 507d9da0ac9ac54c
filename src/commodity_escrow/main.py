"""FastAPI application entry point for the Commodity Trade Escrow.

Lifecycle:
    1. Startup: Initialize logging; the ledger itself is built by the factory.
    2. Running: Serve REST API + MCP tools on a single Uvicorn process.
    3. Shutdown: Log the final ledger size.

The ledger lives in process memory on ``app.state.ledger``; it is the only
store of agreements. The MCP server is mounted at /mcp so trading agents
can discover tools alongside the REST API at /api/v1/*.
In development, /api/v1/assets mints and approves on the simulated asset
ledgers so a buyer has something to pay with.

Run with:
    uv run uvicorn commodity_escrow.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from commodity_escrow import __version__
from commodity_escrow.config import Settings, get_settings
from commodity_escrow.infrastructure.assets import build_simulated_registry
from commodity_escrow.logging_config import get_logger, setup_logging
from commodity_escrow.services.escrow_service import EscrowLedger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        assets=app.state.ledger.supported_assets(),
    )
    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    logger.info("app.stopped", agreements=app.state.ledger.next_id)


def build_ledger(settings: Settings) -> EscrowLedger:
    """Create a ledger whose custody runs on simulated asset ledgers."""
    registry = build_simulated_registry(
        settings.custody_account,
        native_symbol=settings.native_asset_symbol,
        token_ids=settings.simulated_token_list,
    )
    return EscrowLedger(registry)


def create_app(ledger: EscrowLedger | None = None) -> FastAPI:
    """Create and configure the FastAPI app.

    Args:
        ledger: Ledger to serve. Built from settings when omitted.
    """
    settings = get_settings()

    app = FastAPI(
        title="Commodity Trade Escrow",
        description=(
            "Two-party trade escrow with arbitrated disputes. "
            "Funds are paid in once, settled once and withdrawn once."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.ledger = ledger if ledger is not None else build_ledger(settings)

    # --- Middleware ---
    from commodity_escrow.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from commodity_escrow.api.routes.agreements import router as agreements_router
    from commodity_escrow.api.routes.assets import router as assets_router
    from commodity_escrow.api.routes.health import router as health_router

    app.include_router(health_router)
    app.include_router(agreements_router)
    app.include_router(assets_router)

    # --- MCP Server (mounted as sub-application) ---
    from commodity_escrow.mcp_server.tools import bind_ledger, mcp

    bind_ledger(app.state.ledger)
    app.mount("/mcp", mcp.sse_app())

    return app


# The app instance used by Uvicorn
app = create_app()
