from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from credential_service.api.credentials import router as credentials_router
from credential_service.api.dependencies import key_manager, ledger_client
from credential_service.api.health import router as health_router
from credential_service.api.metrics_endpoint import router as metrics_router
from credential_service.core.config import SETTINGS
from credential_service.core.logging import setup_logging
from credential_service.db.engine import lifespan_db
from credential_service.db.redis import lifespan_redis
from credential_service.ledger.client import lifespan_ledger
from credential_service.middleware.metrics import MetricsMiddleware
from credential_service.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Resolve the signing key before serving: a malformed
    # SOLANA_PRIVATE_KEY aborts startup with InvalidKeyFormat.
    key_manager.get_signing_keypair()
    logger.info(
        "Signing wallet ready public_key=%s network=%s",
        key_manager.public_key,
        SETTINGS.ledger_network,
        extra={"public_key": key_manager.public_key},
    )

    # Teardown runs in reverse order, like nested try/finally.
    async with lifespan_db():
        async with lifespan_redis():
            async with lifespan_ledger(ledger_client):
                yield


app = FastAPI(
    title="credential-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(credentials_router)
app.include_router(health_router)

logger.info(
    "credential-service started  env=%s log_level=%s port=%d ledger=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.ledger_network,
    "on" if SETTINGS.is_dev else "off",
)
