"""CORS and per-client rate limiting for the API"""
import logging
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from journal_coach.config import CORS_ORIGINS

logger = logging.getLogger(__name__)

# Keyed by client IP; each route declares its own limit with @limiter.limit
limiter = Limiter(key_func=get_remote_address)


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-User-Id"],
    )
    logger.info(f"CORS allowed origins: {', '.join(CORS_ORIGINS) or '(none)'}")


def setup_rate_limiting(app: FastAPI) -> None:
    """Attach the limiter; exceeded limits answer 429"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
