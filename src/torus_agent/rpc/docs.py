"""OpenAPI description derived from the route table."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from torus_agent.rpc.routes import BodyEncoding, HttpVerb, RouteSpec, RouteTable
from torus_agent.schemas.auth import AuthTokenResponse, SignedPayload
from torus_agent.schemas.common import MessageResponse

OPENAPI_VERSION = "3.0.0"
REF_TEMPLATE = "#/components/schemas/{model}"
SECURITY_SCHEME = "Bearer"

_CONTENT_TYPES = {
    BodyEncoding.JSON: "application/json",
    BodyEncoding.MULTIPART: "multipart/form-data",
}


class _SchemaCollector:
    """Gathers model schemas into `components.schemas` and hands out refs."""

    def __init__(self) -> None:
        self.schemas: dict[str, Any] = {}

    def inline(self, model: type[BaseModel]) -> dict[str, Any]:
        schema = model.model_json_schema(ref_template=REF_TEMPLATE)
        self.schemas.update(schema.pop("$defs", {}))
        return schema

    def ref(self, model: type[BaseModel]) -> dict[str, str]:
        self.schemas[model.__name__] = self.inline(model)
        return {"$ref": REF_TEMPLATE.format(model=model.__name__)}


def _json_response(description: str, schema: dict[str, Any]) -> dict[str, Any]:
    return {"description": description, "content": {"application/json": {"schema": schema}}}


def _query_parameters(collector: _SchemaCollector, model: type[BaseModel]) -> list[dict[str, Any]]:
    schema = collector.inline(model)
    required = set(schema.get("required", []))
    return [
        {"name": name, "in": "query", "required": name in required, "schema": field_schema}
        for name, field_schema in schema.get("properties", {}).items()
    ]


def _operation_id(name: str) -> str:
    return name.strip("/").replace("/", "_").replace("-", "_")


def _route_operation(collector: _SchemaCollector, spec: RouteSpec) -> dict[str, Any]:
    operation: dict[str, Any] = {"operationId": _operation_id(spec.name)}
    if spec.summary:
        operation["summary"] = spec.summary

    if spec.http_verb is HttpVerb.GET:
        parameters = _query_parameters(collector, spec.input_schema)
        if parameters:
            operation["parameters"] = parameters
    else:
        content_type = _CONTENT_TYPES[spec.body_encoding]
        operation["requestBody"] = {
            "required": True,
            "content": {content_type: {"schema": collector.ref(spec.input_schema)}},
        }

    responses = {
        "200": _json_response(spec.ok.description, collector.ref(spec.ok.schema)),
        "400": _json_response(spec.err.description, collector.ref(spec.err.schema)),
    }
    if spec.auth_required:
        operation["security"] = [{SECURITY_SCHEME: []}]
        responses["401"] = _json_response("Unauthorized", collector.ref(MessageResponse))
    operation["responses"] = responses
    return operation


def build_openapi(
    table: RouteTable,
    *,
    title: str,
    version: str,
    auth_path: str = "/auth",
) -> dict[str, Any]:
    """Render an OpenAPI 3.0 document for the auth route and every registered route."""
    collector = _SchemaCollector()
    paths: dict[str, Any] = {
        auth_path: {
            "post": {
                "operationId": "authenticate",
                "summary": "Exchange a signed challenge for a bearer token",
                "requestBody": {
                    "required": True,
                    "content": {"application/json": {"schema": collector.ref(SignedPayload)}},
                },
                "responses": {
                    "200": _json_response(
                        "Authentication successful",
                        collector.ref(AuthTokenResponse),
                    ),
                    "400": _json_response("Invalid request", collector.ref(MessageResponse)),
                },
            }
        }
    }
    for route in table:
        spec = route.spec
        paths.setdefault(spec.name, {})[spec.http_verb.value.lower()] = _route_operation(
            collector, spec
        )

    return {
        "openapi": OPENAPI_VERSION,
        "info": {"title": title, "version": version},
        "paths": paths,
        "components": {
            "schemas": collector.schemas,
            "securitySchemes": {
                SECURITY_SCHEME: {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
            },
        },
    }
