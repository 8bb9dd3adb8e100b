"""Shared API dependencies resolving the agent's runtime components."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Request

from torus_agent.core.settings import AgentSettings
from torus_agent.rpc.context import AuthUser
from torus_agent.rpc.dispatcher import Dispatcher
from torus_agent.services.challenge import ChallengeValidator
from torus_agent.services.tokens import SessionTokenService

AfterAuthHook = Callable[[AuthUser], Awaitable[None] | None]


@dataclass(frozen=True)
class AgentState:
    """Components built once per agent and shared by all requests."""

    settings: AgentSettings
    challenges: ChallengeValidator
    tokens: SessionTokenService
    dispatcher: Dispatcher
    openapi: dict[str, Any] | None = None
    on_after_auth: AfterAuthHook | None = None


def get_agent_state(request: Request) -> AgentState:
    """Return the state attached to the application serving `request`."""
    state: AgentState = request.app.state.agent
    return state


AgentStateDep = Annotated[AgentState, Depends(get_agent_state)]
