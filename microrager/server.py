"""
FastAPI server for the Microrager service.

This module implements the HTTP contract for the daily message board. A
single `/messages` resource is routed by method: GET lists today's board,
POST submits a message, PATCH records a batch of votes and OPTIONS answers
CORS preflight. The date is always derived from the server clock in UTC.
"""

import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .dataset import build_dataset
from .errors import RateLimitError, StoreError, ValidationError
from .store import MessageStore, utcnow
from .votes import VoteAggregator

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "content-type",
    "Access-Control-Allow-Methods": "GET,POST,PATCH,OPTIONS",
}


# API Response Schemas
class StatusResponse(BaseModel):
    """Envelope for successful writes."""

    message: str = Field(..., description="Human readable outcome")


class ErrorResponse(BaseModel):
    """Envelope for every failure."""

    error: str = Field(..., description="Human readable error")


def _error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=error).model_dump(), status_code=status_code)


def _status(message: str) -> JSONResponse:
    return JSONResponse(StatusResponse(message=message).model_dump())


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError:
        # Covers decode errors and integers past the interpreter digit limit
        raise ValidationError("Invalid JSON in request body") from None


def create_app(
    settings: Settings | None = None,
    *,
    message_store: MessageStore | None = None,
    vote_aggregator: VoteAggregator | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """
    Create a FastAPI application wired to the configured storage.

    Args:
        settings: Service settings; read from the environment when omitted
        message_store: Overrides the store built from settings
        vote_aggregator: Overrides the aggregator built from settings
        clock: Source of the current time, used to pick today's board

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()

    if message_store is None or vote_aggregator is None:
        dataset = build_dataset(settings)
        if message_store is None:
            message_store = MessageStore(
                dataset, max_length=settings.max_message_length, clock=clock
            )
        if vote_aggregator is None:
            vote_aggregator = VoteAggregator(dataset, max_count=settings.max_vote_count)

    def today() -> str:
        return clock().astimezone(timezone.utc).strftime("%Y-%m-%d")

    def source_identity(request: Request) -> str:
        if settings.trust_forwarded_for:
            forwarded = request.headers.get("x-forwarded-for", "")
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        return request.client.host if request.client else "local"

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        logger.info("Microrager starting with storage mode %s", settings.storage_mode)
        yield

    app = FastAPI(
        title="Microrager",
        description="A daily mood board with color votes",
        version=__version__,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_cors_headers(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            return _error(405, "Method not allowed")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        # Served by ServerErrorMiddleware, outside add_cors_headers
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        response = _error(500, "Internal server error")
        response.headers.update(CORS_HEADERS)
        return response

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "microrager"}

    @app.options("/messages")
    async def preflight() -> dict[str, bool]:
        """CORS preflight."""
        return {"ok": True}

    @app.get("/messages")
    async def list_messages() -> JSONResponse:
        """
        Get today's board.

        Returns:
            JSON array of messages, seed messages first
        """
        try:
            messages = await message_store.list(today())
        except StoreError:
            logger.exception("Error reading messages")
            return _error(500, "Error reading messages")
        return JSONResponse([m.to_document() for m in messages])

    @app.post("/messages")
    async def post_message(request: Request) -> JSONResponse:
        """
        Submit today's message for the calling address.

        Expects a body shaped like {"message": "..."}.
        """
        try:
            body = await _read_json(request)
            candidate = body.get("message") if isinstance(body, dict) else None
            message = await message_store.append(
                today(), candidate, source_identity(request)
            )
        except ValidationError as e:
            return _error(400, str(e))
        except RateLimitError as e:
            return _error(429, str(e))
        except StoreError as e:
            logger.exception("Error saving message")
            if e.action == "read":
                return _error(500, "Error reading messages")
            return _error(500, "Error saving message")

        logger.debug("Created %s", message.id)
        return _status("Message accepted")

    @app.patch("/messages")
    async def patch_votes(request: Request) -> JSONResponse:
        """
        Record a batch of votes on today's board.

        Expects a body shaped like {"votes": [{"id", "color", "count"}, ...]}.
        Malformed entries are skipped.
        """
        try:
            body = await _read_json(request)
            votes = body.get("votes") if isinstance(body, dict) else None
            if not isinstance(votes, list):
                raise ValidationError("Votes array is required")
            await vote_aggregator.apply_batch(today(), votes)
        except ValidationError as e:
            return _error(400, str(e))
        except StoreError as e:
            logger.exception("Error saving votes")
            if e.action == "read":
                return _error(500, "Error reading messages")
            return _error(500, "Error saving votes")

        return _status("Batch votes recorded")

    return app


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "microrager.server:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
