"""HTTP mapping for delivery error kinds.

Protean's handlers cover ValidationError (400) and ObjectNotFoundError (404);
state conflicts, version conflicts and missing actors get their own status
codes on top.
"""

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from delivery.errors import StateConflict, Unauthenticated, require_actor


def current_actor(x_actor_id: str | None = Header(default=None)) -> str:
    """Resolve the acting user from the ``X-Actor-Id`` header."""
    return require_actor(x_actor_id)


def _messages(exc):
    return getattr(exc, "messages", None) or {"_entity": [str(exc)]}


async def _state_conflict_handler(request: Request, exc: StateConflict) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": _messages(exc)})


async def _version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    message = "Record was modified concurrently, retry the request"
    return JSONResponse(status_code=409, content={"error": {"_entity": [message]}})


async def _unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": _messages(exc)})


def register_delivery_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(StateConflict, _state_conflict_handler)
    app.add_exception_handler(ExpectedVersionError, _version_conflict_handler)
    app.add_exception_handler(Unauthenticated, _unauthenticated_handler)
