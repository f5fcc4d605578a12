import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from starlette.exceptions import HTTPException as StarletteHTTPException
from dishka.integrations.fastapi import setup_dishka
from pydantic import ValidationError

from core.container import container
from core.environment.config import Settings
from core.exception_handler import (
    http_exception_handler,
    starlette_exception_handler,
    custom_exception_handler
)
from core.exceptions import BaseCustomException
from core.logging.providers import configure_logging
from wallet_exporter.router import router as exporter_router, api_router as wallets_router
from wallet_exporter.scheduler import ScrapeScheduler

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Start the scrape scheduler with the app and stop it on shutdown.

    Building the scheduler connects to the RPC endpoint and resolves the
    dependent contracts; a failure there aborts startup.
    """
    logger = await container.get(logging.Logger, component="logger")
    try:
        scheduler = await container.get(ScrapeScheduler, component="wallets")
    except BaseCustomException as e:
        logger.critical(f"Failed to create exporter: {e.message}")
        await container.close()
        raise

    scheduler.start()
    try:
        yield
    finally:
        logger.info("Shutting down gracefully...")
        await scheduler.stop()
        await container.close()
        logger.info("Exporter stopped")


app = FastAPI(
    title="Dealbot Wallet Exporter",
    version=VERSION,
    description="Prometheus exporter for Synapse storage provider wallet balances",
    lifespan=lifespan,
)

setup_dishka(container, app)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StarletteHTTPException, starlette_exception_handler)
app.add_exception_handler(BaseCustomException, custom_exception_handler)
app.add_exception_handler(Exception, custom_exception_handler)

app.include_router(exporter_router)
app.include_router(wallets_router)


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns
    -------
    dict
        Application information
    """
    return {
        "name": "Dealbot Wallet Exporter",
        "version": VERSION,
        "description": "Prometheus exporter for Synapse storage provider wallet balances",
        "endpoints": {
            "metrics": "/metrics",
            "status": "/status",
            "health": "/health",
            "wallets": "/api/wallets",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health():
    """
    Health check endpoint, independent of collection state.

    Returns
    -------
    dict
        Health status
    """
    return {"status": "ok", "version": VERSION}


def run() -> None:
    """
    Validate configuration and serve the exporter with uvicorn.
    """
    try:
        settings = Settings()
    except ValidationError as e:
        logger = configure_logging()
        logger.critical(f"Failed to load configuration: {e}")
        sys.exit(1)

    logger = configure_logging(settings.log_level_number)
    logger.info(
        f"Configuration loaded: network={settings.network}, rpc_url={settings.rpc_url}, "
        f"warm_storage={settings.warm_storage_address}, usdfc={settings.usdfc_token_address}, "
        f"payments={settings.payments_address}, port={settings.exporter_port}, "
        f"scrape_interval={settings.scrape_interval.total_seconds()}s, custom_wallets={len(settings.custom_wallets)}"
    )
    uvicorn.run(app, host=settings.exporter_host, port=settings.exporter_port, log_level=settings.log_level_number)


if __name__ == "__main__":
    run()
