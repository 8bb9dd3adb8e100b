"""Assembling and running an agent.

An agent is built in two phases. `AgentBuilder` collects route
registrations and settings; `AgentBuilder.build()` freezes the route table,
renders the API description and returns an `Agent`, which owns the ASGI
application and the server loop.

Example:
    builder = AgentBuilder(AgentSettings(token_secret="change-me"))

    @builder.method("/hello", input_schema=HelloIn, ok=RouteOutput(HelloOut, "Greeting"),
                    err=RouteOutput(MessageResponse, "Error"))
    async def hello(payload: HelloIn, context: CallContext) -> Result:
        return Ok({"message": f"Hello {payload.name}!"})

    builder.build().run()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from torus_agent.api import create_auth_router, create_dispatch_router, create_docs_router
from torus_agent.api.dependencies import AfterAuthHook, AgentState
from torus_agent.core.errors import InvalidRouteError, RegistrationError
from torus_agent.core.settings import AgentSettings, get_settings
from torus_agent.rpc.dispatcher import Dispatcher, message_response
from torus_agent.rpc.docs import build_openapi
from torus_agent.rpc.routes import (
    BodyEncoding,
    Handler,
    HttpVerb,
    Route,
    RouteOutput,
    RouteSpec,
    RouteTable,
)
from torus_agent.services.challenge import ChallengeValidator
from torus_agent.services.chain import TransactionChecker, unavailable_transaction_checker
from torus_agent.services.replay import NonceReplayGuard
from torus_agent.services.signing import SignatureVerifier
from torus_agent.services.tokens import SessionTokenService

logger = logging.getLogger(__name__)


def _as_output(value: RouteOutput | type[BaseModel], default_description: str) -> RouteOutput:
    if isinstance(value, RouteOutput):
        return value
    if isinstance(value, type) and issubclass(value, BaseModel):
        doc = (value.__doc__ or "").strip().splitlines()
        return RouteOutput(schema=value, description=doc[0] if doc else default_description)
    raise InvalidRouteError(f"Expected a RouteOutput or pydantic model, got {value!r}")


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    detail = getattr(exc, "detail", "Error")
    status_code = getattr(exc, "status_code", 500)
    return message_response(status_code, str(detail))


class Agent:
    """A built agent: a read-only route table served by a FastAPI app."""

    def __init__(
        self,
        settings: AgentSettings,
        app: FastAPI,
        routes: RouteTable,
        openapi: dict[str, Any] | None,
    ) -> None:
        self.settings = settings
        self.app = app
        self.routes = routes
        self.openapi = openapi

    @property
    def state(self) -> AgentState:
        state: AgentState = self.app.state.agent
        return state

    def run(self) -> None:
        """Serve the agent with uvicorn until interrupted."""
        logging.basicConfig(
            level=self.settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger.info(
            "Agent serving %d routes on %s:%d",
            len(self.routes),
            self.settings.host,
            self.settings.port,
        )
        uvicorn.run(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level,
        )


class AgentBuilder:
    """Registration phase of an agent."""

    def __init__(
        self,
        settings: AgentSettings | None = None,
        *,
        on_after_auth: AfterAuthHook | None = None,
        check_transaction: TransactionChecker | None = None,
        nonce_guard: NonceReplayGuard | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.on_after_auth = on_after_auth
        self.check_transaction = check_transaction or unavailable_transaction_checker
        self.nonce_guard = nonce_guard
        reserved = [self.settings.auth_path]
        if self.settings.docs_enabled:
            reserved.append(self.settings.docs_path)
        self.routes = RouteTable(reserved=reserved)
        self._built = False

    def register(self, spec: RouteSpec, handler: Handler) -> Route:
        """Add a route; wiring mistakes raise `RegistrationError` immediately."""
        if self._built:
            raise RegistrationError(f"Agent already built; cannot register {spec.name}")
        return self.routes.register(spec, handler)

    def method(
        self,
        name: str,
        *,
        input_schema: type[BaseModel],
        ok: RouteOutput | type[BaseModel],
        err: RouteOutput | type[BaseModel],
        http_verb: HttpVerb | str = HttpVerb.POST,
        auth_required: bool = False,
        multipart: bool = False,
        summary: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering the wrapped function as route `name`."""
        spec = RouteSpec(
            name=name,
            input_schema=input_schema,
            ok=_as_output(ok, "Successful response"),
            err=_as_output(err, "Error response"),
            http_verb=http_verb,  # type: ignore[arg-type]
            auth_required=auth_required,
            body_encoding=BodyEncoding.MULTIPART if multipart else BodyEncoding.JSON,
            summary=summary,
        )

        def decorator(handler: Handler) -> Handler:
            self.register(spec, handler)
            return handler

        return decorator

    def build(self) -> Agent:
        """Freeze the route table and assemble the runtime application."""
        if self._built:
            raise RegistrationError("Agent already built")
        self._built = True
        self.routes.freeze()
        settings = self.settings

        tokens = SessionTokenService(settings.token_secret, settings.jwt_algorithm)
        challenges = ChallengeValidator(
            SignatureVerifier(),
            self.nonce_guard or NonceReplayGuard(),
            ss58_format=settings.ss58_format,
        )
        dispatcher = Dispatcher(
            self.routes,
            tokens,
            header_name=settings.auth_header_name,
            agent_address=settings.address,
            check_transaction=self.check_transaction,
        )
        openapi = None
        if settings.docs_enabled:
            openapi = build_openapi(
                self.routes,
                title=settings.docs_title,
                version=settings.docs_version,
                auth_path=settings.auth_path,
            )

        app = FastAPI(
            title=settings.docs_title,
            version=settings.docs_version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        app.state.agent = AgentState(
            settings=settings,
            challenges=challenges,
            tokens=tokens,
            dispatcher=dispatcher,
            openapi=openapi,
            on_after_auth=self.on_after_auth,
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
        )
        app.add_exception_handler(StarletteHTTPException, _http_exception_handler)

        app.include_router(create_auth_router(settings.auth_path))
        if openapi is not None:
            app.include_router(create_docs_router(settings.docs_path))
        app.include_router(create_dispatch_router())

        logger.debug("Built agent with routes: %s", ", ".join(r.spec.name for r in self.routes))
        return Agent(settings, app, self.routes, openapi)
