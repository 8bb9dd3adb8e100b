"""Catch-all route handing every other request to the dispatcher."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from torus_agent.api.dependencies import AgentStateDep


async def dispatch(request: Request, state: AgentStateDep) -> JSONResponse:
    return await state.dispatcher.dispatch(request)


def create_dispatch_router() -> APIRouter:
    """Return a router matching every path for the verbs routes can use.

    It must be included after the auth and docs routers.
    """
    router = APIRouter()
    router.add_api_route("/{path:path}", dispatch, methods=["GET", "POST"], include_in_schema=False)
    return router
