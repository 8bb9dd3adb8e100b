"""Challenge-response authentication endpoint."""

from __future__ import annotations

import inspect
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from torus_agent.api.dependencies import AgentState, AgentStateDep
from torus_agent.core.errors import AuthenticationError
from torus_agent.rpc.context import AuthUser
from torus_agent.rpc.dispatcher import message_response
from torus_agent.schemas.auth import AuthTokenResponse, SignedPayload

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request"


async def _run_after_auth(state: AgentState, user: AuthUser) -> None:
    if state.on_after_auth is None:
        return
    outcome = state.on_after_auth(user)
    if inspect.isawaitable(outcome):
        await outcome


async def authenticate(request: Request, state: AgentStateDep) -> JSONResponse:
    """Exchange a wallet-signed challenge for a bearer session token.

    Every failure is answered with the same message so that callers cannot
    tell which check rejected them; the reason is only logged.
    """
    try:
        signed = SignedPayload.model_validate(await request.json())
        origin = state.settings.auth_origin or request.headers.get("origin", "")
        identity, document = await run_in_threadpool(state.challenges.validate, signed, origin)
    except (AuthenticationError, ValidationError, ValueError) as err:
        logger.warning("Error verifying auth request: %s", err)
        return message_response(status.HTTP_400_BAD_REQUEST, INVALID_REQUEST_MESSAGE)

    token = state.tokens.issue(identity, document.uri)
    try:
        await _run_after_auth(state, AuthUser(wallet_address=identity))
    except Exception:
        logger.exception("After-auth hook failed for %s", identity)
        return message_response(status.HTTP_400_BAD_REQUEST, INVALID_REQUEST_MESSAGE)

    logger.info("Issued session token for %s", identity)
    return JSONResponse(AuthTokenResponse(token=token).model_dump())


def create_auth_router(path: str) -> APIRouter:
    """Return a router exposing the auth endpoint at `path`."""
    router = APIRouter(tags=["authentication"])
    router.add_api_route(
        path,
        authenticate,
        methods=["POST"],
        summary="Exchange a signed challenge for a bearer token",
        include_in_schema=False,
    )
    return router
