"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from candidate_identity.api.dependencies import otp_ledger
from candidate_identity.api.errors import install_error_handlers
from candidate_identity.api.router import router as candidate_router
from candidate_identity.config import settings
from candidate_identity.database.engine import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

# How often expired OTPs are swept from memory
OTP_SWEEP_INTERVAL_SECONDS = 60


async def _sweep_expired_otps() -> None:
    while True:
        await asyncio.sleep(OTP_SWEEP_INTERVAL_SECONDS)
        otp_ledger.purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s …", settings.app_name)
    await init_db()
    logger.info("Database initialised")
    sweeper = asyncio.create_task(_sweep_expired_otps())
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info("Shutting down %s …", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Candidate identity reconciliation and OTP verification",
    version="0.1.0",
    lifespan=lifespan,
)

install_error_handlers(app)
app.include_router(candidate_router)


@app.get("/health")
async def health_check():
    """Simple liveness probe."""
    return {"status": "healthy", "app": settings.app_name}
