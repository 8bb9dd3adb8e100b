"""Route specifications and the table that holds them.

Routes are registered while an agent is being assembled and the table is
frozen before the server accepts requests, so lookups need no locking.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from torus_agent.core.errors import (
    DuplicateRouteError,
    InvalidRouteError,
    MethodNotAllowedError,
    RegistrationError,
    RouteNotFoundError,
)
from torus_agent.rpc.context import CallContext
from torus_agent.rpc.result import Result

logger = logging.getLogger(__name__)

Handler = Callable[[Any, CallContext], Awaitable[Result] | Result]


class HttpVerb(str, Enum):
    """HTTP methods a route can be exposed on."""

    GET = "GET"
    POST = "POST"


class BodyEncoding(str, Enum):
    """How a POST route's body is read."""

    JSON = "json"
    MULTIPART = "multipart"


def normalize_route_name(name: str) -> str:
    """Canonical form of a route name: one leading slash, no trailing slash.

    `"test"`, `"/test"` and `"/test/"` all normalise to `"/test"`.
    """
    parts = [part for part in name.strip().split("/") if part]
    return "/" + "/".join(parts)


@dataclass(frozen=True)
class RouteOutput:
    """Schema and description of one response variant."""

    schema: type[BaseModel]
    description: str


@dataclass(frozen=True)
class RouteSpec:
    """Immutable contract of a registered method."""

    name: str
    input_schema: type[BaseModel]
    ok: RouteOutput
    err: RouteOutput
    http_verb: HttpVerb = HttpVerb.POST
    auth_required: bool = False
    body_encoding: BodyEncoding = BodyEncoding.JSON
    summary: str | None = None

    def __post_init__(self) -> None:
        verb, encoding = self.http_verb, self.body_encoding
        try:
            if not isinstance(verb, HttpVerb):
                object.__setattr__(self, "http_verb", HttpVerb(str(verb).upper()))
        except ValueError as err:
            raise InvalidRouteError(f"Unsupported HTTP verb for {self.name}: {verb}") from err
        try:
            if not isinstance(encoding, BodyEncoding):
                object.__setattr__(self, "body_encoding", BodyEncoding(str(encoding).lower()))
        except ValueError as err:
            raise InvalidRouteError(
                f"Unsupported body encoding for {self.name}: {self.body_encoding}"
            ) from err
        object.__setattr__(self, "name", normalize_route_name(self.name))


@dataclass(frozen=True)
class Route:
    """A route specification paired with its handler."""

    spec: RouteSpec
    handler: Handler


def _is_model(value: object) -> bool:
    return inspect.isclass(value) and issubclass(value, BaseModel)


def validate_wiring(spec: RouteSpec, handler: Handler) -> None:
    """Reject routes whose schemas or handler cannot work at request time."""
    if spec.name == "/":
        raise InvalidRouteError("Route name must not be empty")
    for label, schema in (
        ("input", spec.input_schema),
        ("ok", spec.ok.schema),
        ("err", spec.err.schema),
    ):
        if not _is_model(schema):
            raise InvalidRouteError(f"{spec.name}: {label} schema must be a pydantic model")
    if spec.http_verb is HttpVerb.GET and spec.body_encoding is BodyEncoding.MULTIPART:
        raise InvalidRouteError(f"{spec.name}: GET routes carry no multipart body")
    if not callable(handler):
        raise InvalidRouteError(f"{spec.name}: handler is not callable")
    try:
        inspect.signature(handler).bind(None, None)
    except TypeError as err:
        raise InvalidRouteError(
            f"{spec.name}: handler must accept (input, context) arguments"
        ) from err
    except ValueError:  # pragma: no cover - builtins without signatures
        pass


class RouteTable:
    """Ordered mapping from normalised route name to route."""

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._routes: dict[str, Route] = {}
        self._reserved = frozenset(normalize_route_name(name) for name in reserved)
        self._frozen = False

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_route_name(name) in self._routes

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, spec: RouteSpec, handler: Handler) -> Route:
        """Add a route.

        Raises:
            DuplicateRouteError: If the normalised name is already taken.
            InvalidRouteError: If the route is wired incorrectly.
            RegistrationError: If the table is already frozen.
        """
        if self._frozen:
            raise RegistrationError(f"Route table is frozen; cannot register {spec.name}")
        if spec.name in self._routes or spec.name in self._reserved:
            raise DuplicateRouteError(spec.name)
        validate_wiring(spec, handler)
        route = Route(spec=spec, handler=handler)
        self._routes[spec.name] = route
        logger.debug("Registered %s %s", spec.http_verb.value, spec.name)
        return route

    def freeze(self) -> None:
        """Close the registration phase."""
        self._frozen = True

    def get(self, name: str) -> Route | None:
        return self._routes.get(normalize_route_name(name))

    def resolve(self, verb: str, path: str) -> Route:
        """Find the route serving `verb path`.

        Raises:
            RouteNotFoundError: If no route has this name.
            MethodNotAllowedError: If the route exists under another verb.
        """
        route = self.get(path)
        if route is None:
            raise RouteNotFoundError(f"No route for {path}")
        if route.spec.http_verb.value != verb.upper():
            raise MethodNotAllowedError(f"{route.spec.name} does not accept {verb}")
        return route
