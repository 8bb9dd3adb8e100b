"""Sample agent exposing a CID echo method.

Run with `python -m torus_agent.main` after setting `AGENT_TOKEN_SECRET`.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from torus_agent.agent import Agent, AgentBuilder
from torus_agent.core.settings import AgentSettings, get_settings
from torus_agent.rpc.context import CallContext
from torus_agent.rpc.result import Err, Ok, Result
from torus_agent.rpc.routes import RouteOutput
from torus_agent.schemas.common import MessageResponse


class CidRequest(BaseModel):
    """Content identifier submitted by the caller."""

    cid: str = Field(..., description="Content identifier")


class CidResponse(BaseModel):
    """Content identifier echoed back to the caller."""

    cid: str


class SessionResponse(BaseModel):
    """Wallet bound to the presented session token."""

    wallet_address: str
    agent_address: str


class EmptyRequest(BaseModel):
    """Method without parameters."""


def create_agent(settings: AgentSettings | None = None) -> Agent:
    """Build the sample agent."""
    builder = AgentBuilder(settings or get_settings())

    @builder.method(
        "/test",
        input_schema=CidRequest,
        ok=RouteOutput(CidResponse, "CID"),
        err=RouteOutput(MessageResponse, "Error"),
        summary="Echo a content identifier",
    )
    async def echo_cid(payload: CidRequest, context: CallContext) -> Result:
        if not payload.cid:
            return Err(MessageResponse(message="CID is required"))
        return Ok(CidResponse(cid=payload.cid))

    @builder.method(
        "/check-session",
        input_schema=EmptyRequest,
        ok=RouteOutput(SessionResponse, "Return the user session"),
        err=RouteOutput(MessageResponse, "Return a message when the session is unknown"),
        http_verb="GET",
        auth_required=True,
    )
    async def check_session(payload: EmptyRequest, context: CallContext) -> Result:
        if context.user is None:
            return Err({"message": "User not found"})
        return Ok(
            {
                "wallet_address": context.user.wallet_address,
                "agent_address": context.agent_address,
            }
        )

    return builder.build()


if __name__ == "__main__":
    create_agent().run()
