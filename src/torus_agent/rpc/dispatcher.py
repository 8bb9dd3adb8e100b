"""Per-request pipeline: resolve, authenticate, validate, invoke, render."""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from torus_agent.core.errors import (
    InvalidInputError,
    MethodNotAllowedError,
    MissingTokenError,
    RouteNotFoundError,
    TokenValidationError,
)
from torus_agent.rpc.context import AuthContext, CallContext
from torus_agent.rpc.result import Err, Ok
from torus_agent.rpc.routes import BodyEncoding, HttpVerb, Route, RouteSpec, RouteTable
from torus_agent.services.chain import TransactionChecker, unavailable_transaction_checker
from torus_agent.services.tokens import SessionTokenService

logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = "Missing authentication token"
INVALID_TOKEN_MESSAGE = "Invalid authentication token"
NOT_FOUND_MESSAGE = "Not found"
METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def message_response(status_code: int, message: str) -> JSONResponse:
    """Return the `{"message": ...}` body used for transport-level errors."""
    return JSONResponse({"message": message}, status_code=status_code)


def describe_validation_error(err: ValidationError) -> str:
    """Summarise pydantic errors as `field: reason` pairs."""
    parts = []
    for error in err.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid input"


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the credential of a `Bearer <token>` header value."""
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def serialize_payload(schema: type[BaseModel], value: Any) -> dict[str, Any]:
    """Check a handler payload against its variant schema and dump it as JSON data."""
    if isinstance(value, BaseModel) and not isinstance(value, schema):
        value = value.model_dump()
    model = value if isinstance(value, schema) else schema.model_validate(value)
    data: dict[str, Any] = model.model_dump(mode="json", by_alias=True)
    return data


class Dispatcher:
    """Serves every registered route against a frozen route table."""

    def __init__(
        self,
        table: RouteTable,
        tokens: SessionTokenService,
        *,
        header_name: str = "Authorization",
        agent_address: str = "",
        check_transaction: TransactionChecker = unavailable_transaction_checker,
    ) -> None:
        self.table = table
        self.tokens = tokens
        self.header_name = header_name
        self.agent_address = agent_address
        self.check_transaction = check_transaction

    async def dispatch(self, request: Request) -> JSONResponse:
        """Answer one request; every failure becomes a JSON response."""
        try:
            return await self._dispatch(request)
        finally:
            await request.close()

    async def _dispatch(self, request: Request) -> JSONResponse:
        try:
            route = self.table.resolve(request.method, request.url.path)
        except MethodNotAllowedError:
            return message_response(status.HTTP_405_METHOD_NOT_ALLOWED, METHOD_NOT_ALLOWED_MESSAGE)
        except RouteNotFoundError:
            return message_response(status.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

        try:
            auth = self.authenticate(route.spec, request)
        except MissingTokenError:
            return message_response(status.HTTP_401_UNAUTHORIZED, MISSING_TOKEN_MESSAGE)
        except TokenValidationError as err:
            logger.warning("Rejected token for %s: %s", route.spec.name, err)
            return message_response(status.HTTP_401_UNAUTHORIZED, INVALID_TOKEN_MESSAGE)

        try:
            payload = await self.extract_input(route.spec, request)
        except InvalidInputError as err:
            return message_response(status.HTTP_400_BAD_REQUEST, err.message)

        context = CallContext(
            auth=auth,
            agent_address=self.agent_address,
            check_transaction=self.check_transaction,
        )
        try:
            return await self.invoke(route, payload, context)
        except Exception:
            logger.exception("Handler for %s failed", route.spec.name)
            return message_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    def authenticate(self, spec: RouteSpec, request: Request) -> AuthContext:
        """Build the auth context, validating the bearer token when required.

        Raises:
            MissingTokenError: If the route requires a token and none was sent.
            TokenValidationError: If the presented token is not acceptable.
        """
        if not spec.auth_required:
            return AuthContext()
        token = extract_bearer_token(request.headers.get(self.header_name))
        if token is None:
            raise MissingTokenError(f"{self.header_name} header carries no bearer token")
        claims = self.tokens.validate(token)
        return AuthContext(identity=claims.identity)

    async def extract_input(self, spec: RouteSpec, request: Request) -> BaseModel:
        """Read the request input and validate it against the route's schema.

        Raises:
            InvalidInputError: If the body cannot be parsed or fails validation.
        """
        if spec.http_verb is HttpVerb.GET:
            data: Any = dict(request.query_params)
        elif spec.body_encoding is BodyEncoding.MULTIPART:
            data = await self._read_form(request)
        else:
            data = await self._read_json(request)

        try:
            return spec.input_schema.model_validate(data)
        except ValidationError as err:
            raise InvalidInputError(describe_validation_error(err), err.errors()) from err

    async def invoke(self, route: Route, payload: BaseModel, context: CallContext) -> JSONResponse:
        """Run the handler and map its result onto a response."""
        if inspect.iscoroutinefunction(route.handler):
            result = await route.handler(payload, context)
        else:
            result = await run_in_threadpool(route.handler, payload, context)
            if inspect.isawaitable(result):
                result = await result

        match result:
            case Ok(value=value):
                return JSONResponse(serialize_payload(route.spec.ok.schema, value))
            case Err(value=value):
                return JSONResponse(
                    serialize_payload(route.spec.err.schema, value),
                    status_code=status.HTTP_400_BAD_REQUEST,
                )
            case _:
                raise TypeError(
                    f"Handler for {route.spec.name} returned {type(result).__name__}, "
                    "expected Ok or Err"
                )

    @staticmethod
    async def _read_json(request: Request) -> Any:
        body = await request.body()
        if not body.strip():
            return {}
        try:
            return json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            raise InvalidInputError("Invalid JSON body") from err

    @staticmethod
    async def _read_form(request: Request) -> dict[str, Any]:
        try:
            form = await request.form()
        except StarletteHTTPException as err:
            raise InvalidInputError(f"Invalid multipart body: {err.detail}") from err
        data: dict[str, Any] = {}
        for key, value in form.multi_items():
            if key in data:
                existing = data[key]
                data[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
            else:
                data[key] = value
        return data
