"""IncidentDesk: incident reporting and triage service.

FastAPI entry point with lifespan management, middleware and CORS.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api.router import api_router
from .config import INSECURE_SECRET_KEY, get_config
from .database import close_engine, create_tables
from .middleware.error_handler import register_error_handlers
from .middleware.request_id import RequestIDMiddleware
from .middleware.security_headers import SecurityHeadersMiddleware
from .utils.logging import get_logger, setup_logging

VERSION = "1.0.0"

config = get_config()
setup_logging(
    debug=config.debug,
    log_dir=config.log_dir,
    log_max_bytes=config.log_max_bytes,
    log_backup_count=config.log_backup_count,
)
logger = get_logger("incidentdesk.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("incidentdesk_starting", host=config.host, port=config.port)

    if config.secret_key == INSECURE_SECRET_KEY:
        if not config.debug:
            raise RuntimeError(
                "INSECURE_SECRET_KEY: default secret_key detected in production mode. "
                "Set a strong, unique SECRET_KEY in .env before deploying."
            )
        logger.warning("insecure_secret_key", hint="set SECRET_KEY before deploying")

    await create_tables(config)
    Path(config.evidence_dir).mkdir(parents=True, exist_ok=True)
    logger.info("database_initialized")

    yield

    await close_engine()
    logger.info("incidentdesk_stopped")


app = FastAPI(
    title="IncidentDesk",
    description="Security incident reporting, triage and analytics",
    version=VERSION,
    lifespan=lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in config.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Added LAST so it runs FIRST
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)

# Evidence files written by LocalAttachmentStorage
app.mount(
    "/evidence",
    StaticFiles(directory=config.evidence_dir, check_dir=False),
    name="evidence",
)


@app.get("/")
async def root():
    return {"name": config.app_name, "version": VERSION, "status": "operational"}


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok", "version": VERSION}


def main():
    """Run the IncidentDesk server."""
    uvicorn.run(
        "incidentdesk.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
