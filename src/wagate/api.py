"""
HTTP control surface

Endpoints:
- GET  /                  capability summary (plain text)
- GET  /health            liveness
- GET  /session           session state and pending QR challenge
- POST /send              direct message to a phone number or chat id
- POST /sendGroupByName   message to a group looked up by name
- POST /broadcast         one message to many recipients
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from pydantic import BaseModel, Field

from wagate import __version__
from wagate.address import Address, AddressKind, normalize
from wagate.dispatch import broadcast
from wagate.errors import GatewayError, InvalidRequestError
from wagate.gateway import Gateway

CAPABILITIES = (
    "WA gateway OK. Endpoints: POST /send, POST /sendGroupByName, POST /broadcast, GET /health, GET /session"
)


# ==================== Request models ====================
# Fields are loosely typed so that missing or malformed values surface as
# 400 envelopes from the handlers instead of framework validation errors.


class SendBody(BaseModel):
    to: Any = None
    message: Any = None


class SendGroupBody(BaseModel):
    group_name: Any = Field(default=None, alias="groupName")
    message: Any = None


class BroadcastBody(BaseModel):
    numbers: Any = None
    message: Any = None


def _missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


# ==================== App factory ====================


def create_app(gateway: Gateway, *, manage_gateway: bool = True) -> FastAPI:
    """Build the FastAPI app around one gateway.

    With `manage_gateway` the app lifespan starts and stops the gateway.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if manage_gateway:
            await gateway.start()
        try:
            yield
        finally:
            if manage_gateway:
                await gateway.stop()

    app = FastAPI(title="wagate", version=__version__, lifespan=lifespan)
    app.state.gateway = gateway

    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        logger.warning("api.error path={} code={} message={}", request.url.path, exc.code, exc)
        return _error(exc.http_status, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("api.invalid_body path={} errors={}", request.url.path, exc.errors())
        return _error(400, "request body must be a JSON object")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("api.unexpected path={}", request.url.path)
        return _error(500, str(exc) or type(exc).__name__)

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return CAPABILITIES

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/session")
    async def session(gw: Gateway = Depends(get_gateway)) -> dict[str, Any]:
        lifecycle = gw.lifecycle
        return {
            "status": "ok",
            "state": lifecycle.state.value,
            "ready": lifecycle.is_ready,
            "qr": lifecycle.qr_payload,
            "lastAuthFailure": lifecycle.last_auth_failure,
        }

    @app.post("/send")
    async def send(body: SendBody, gw: Gateway = Depends(get_gateway)) -> dict[str, Any]:
        if _missing(body.to) or _missing(body.message):
            raise InvalidRequestError("to & message are required")
        address = normalize(body.to)
        await gw.dispatcher.dispatch(address, str(body.message))
        return {"status": "ok", "to": address.value}

    @app.post("/sendGroupByName")
    async def send_group_by_name(body: SendGroupBody, gw: Gateway = Depends(get_gateway)) -> dict[str, Any]:
        if _missing(body.group_name) or _missing(body.message) or not isinstance(body.group_name, str):
            raise InvalidRequestError("groupName & message are required")
        group = await gw.groups.find(body.group_name)
        await gw.dispatcher.dispatch(Address(group.id, AddressKind.GROUP), str(body.message))
        return {"status": "ok", "groupId": group.id, "groupName": group.name}

    @app.post("/broadcast")
    async def broadcast_message(body: BroadcastBody, gw: Gateway = Depends(get_gateway)) -> dict[str, Any]:
        if not isinstance(body.numbers, list) or _missing(body.message):
            raise InvalidRequestError("numbers[] & message are required")
        results = await broadcast(gw.dispatcher, body.numbers, str(body.message))
        return {"status": "ok", "results": [entry.to_dict() for entry in results]}

    return app
