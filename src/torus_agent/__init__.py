"""Typed RPC agents with wallet signature authentication."""

from torus_agent.agent import Agent, AgentBuilder
from torus_agent.core.settings import AgentSettings, get_settings
from torus_agent.rpc.context import AuthUser, CallContext
from torus_agent.rpc.result import Err, Ok, Result
from torus_agent.rpc.routes import BodyEncoding, HttpVerb, RouteOutput, RouteSpec

__all__ = [
    "Agent",
    "AgentBuilder",
    "AgentSettings",
    "AuthUser",
    "BodyEncoding",
    "CallContext",
    "Err",
    "HttpVerb",
    "Ok",
    "Result",
    "RouteOutput",
    "RouteSpec",
    "get_settings",
]
