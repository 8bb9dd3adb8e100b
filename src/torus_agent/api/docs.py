"""Serves the pre-rendered OpenAPI description."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from torus_agent.api.dependencies import AgentStateDep
from torus_agent.rpc.dispatcher import NOT_FOUND_MESSAGE, message_response


async def get_docs(state: AgentStateDep) -> JSONResponse:
    """Return the OpenAPI document computed when the agent was built."""
    if state.openapi is None:
        return message_response(status.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)
    return JSONResponse(state.openapi)


def create_docs_router(path: str) -> APIRouter:
    router = APIRouter(tags=["docs"])
    router.add_api_route(path, get_docs, methods=["GET"], include_in_schema=False)
    return router
