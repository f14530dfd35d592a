import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.exceptions import register_exception_handlers
from core.rate_limiter import build_rate_limiter

from modules.punchcards import (
    PunchError,
    business_router,
    customer_router,
    handle_punch_error,
    punch_router,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Punch Cards API",
        description="NFC punch card campaigns, taps and rewards",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.add_exception_handler(PunchError, handle_punch_error)

    app.state.rate_limiter = build_rate_limiter()

    app.include_router(punch_router)
    app.include_router(customer_router)
    app.include_router(business_router)

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok"}

    logger.info(f"Punch Cards API configured ({settings.environment})")
    return app


app = create_app()
