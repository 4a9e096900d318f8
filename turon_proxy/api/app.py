"""
HTTP surface of the chat proxy.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import ProxyConfig
from ..errors import BadRequest, ProxyError
from ..service import ChatService

logger = logging.getLogger(__name__)

HEALTH_TEXT = "Turon proxy alive"


class ChatRequest(BaseModel):
    message: Optional[str] = None


def _error_response(error: ProxyError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_dict()))


def create_app(config: Optional[ProxyConfig] = None, service: Optional[ChatService] = None) -> FastAPI:
    """Build the FastAPI application around a ChatService."""
    config = config or ProxyConfig()
    service = service or ChatService(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = config.replicate.missing_settings()
        if missing:
            logger.error(f"Replicate settings not configured: {', '.join(missing)}")
        logger.info("Turon proxy started")
        yield
        await service.aclose()
        logger.info("Turon proxy shutting down")

    app = FastAPI(title="Turon Chat Proxy", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(BadRequest("Invalid request body", detail=exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "kind": "http_error"},
            headers=getattr(exc, "headers", None),
        )

    @app.get("/", response_class=PlainTextResponse)
    async def health() -> str:
        return HEALTH_TEXT

    @app.post("/api/chat")
    async def chat(body: ChatRequest):
        try:
            reply = await service.handle(body.message)
        except ProxyError as e:
            if e.status_code >= 500:
                logger.error(f"{e.kind}: {e.message} ({e.detail})")
            else:
                logger.warning(f"{e.kind}: {e.message}")
            return _error_response(e)
        except Exception as e:
            logger.exception("Unexpected error while handling chat request")
            return JSONResponse(
                status_code=500,
                content={"error": "Server error", "kind": "server_error", "detail": str(e)},
            )
        return reply.to_dict()

    return app
