"""Discovery document data structures.

A ``DiscoveryDocument`` is one snapshot of a service's API description.  The
model covers the subset of the discovery format that the differ compares:
top-level metadata, schemas (object or enum variants), and resources with
their methods and parameters.

``from_dict`` accepts the discovery JSON shape (camelCase keys, ``$ref``
objects).  ``to_dict`` produces the same shape with absent fields omitted;
it is used both for change payloads and for snapshot persistence.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


class DocumentParseError(ValueError):
    """Raised when raw content cannot be read as a discovery document."""


def _opt_str(data: dict[str, Any], key: str, where: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DocumentParseError(f"{where}/{key}: expected string, got {type(value).__name__}")
    return value


def _req_str(data: dict[str, Any], key: str, where: str) -> str:
    value = _opt_str(data, key, where)
    if value is None:
        raise DocumentParseError(f"{where}: missing required field {key!r}")
    return value


def _opt_str_list(data: dict[str, Any], key: str, where: str) -> tuple[str, ...] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise DocumentParseError(f"{where}/{key}: expected a list of strings")
    return tuple(value)


def _opt_mapping(data: dict[str, Any], key: str, where: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise DocumentParseError(f"{where}/{key}: expected an object")
    return value


def _ref_of(data: dict[str, Any], key: str, where: str) -> str | None:
    """Read a ``{"$ref": name}`` wrapper, as used by method request/response."""
    wrapper = _opt_mapping(data, key, where)
    if wrapper is None:
        return None
    return _opt_str(wrapper, "$ref", f"{where}/{key}")


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class Property:
    """A single schema property."""

    type: str | None = None
    ref: str | None = None
    format: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str = "") -> Property:
        return cls(
            type=_opt_str(data, "type", where),
            ref=_opt_str(data, "$ref", where),
            format=_opt_str(data, "format", where),
            description=_opt_str(data, "description", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "type": self.type,
                "$ref": self.ref,
                "format": self.format,
                "description": self.description,
            }
        )


def _properties_from(data: dict[str, Any], where: str) -> dict[str, Property] | None:
    raw = _opt_mapping(data, "properties", where)
    if raw is None:
        return None
    return {
        name: Property.from_dict(_as_object(value, f"{where}/properties/{name}"), f"{where}/properties/{name}")
        for name, value in raw.items()
    }


def _properties_to(properties: dict[str, Property] | None) -> dict[str, Any] | None:
    if properties is None:
        return None
    return {name: prop.to_dict() for name, prop in properties.items()}


def _as_object(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise DocumentParseError(f"{where}: expected an object")
    return value


@dataclass(frozen=True)
class ObjectSchema:
    """Schema variant describing an object with named properties."""

    type: str | None = None
    id: str | None = None
    properties: dict[str, Property] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "type": self.type,
                "properties": _properties_to(self.properties),
            }
        )


@dataclass(frozen=True)
class EnumSchema:
    """Schema variant carrying an enumeration.

    ``enum_descriptions[i]`` describes ``enumeration[i]``; the two sequences
    are always compared and reported whole so that pairing is kept.
    """

    enumeration: tuple[str, ...] = ()
    enum_descriptions: tuple[str, ...] | None = None
    type: str | None = None
    id: str | None = None
    properties: dict[str, Property] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "type": self.type,
                "properties": _properties_to(self.properties),
                "enum": list(self.enumeration),
                "enumDescriptions": list(self.enum_descriptions) if self.enum_descriptions is not None else None,
            }
        )


Schema = ObjectSchema | EnumSchema


def schema_from_dict(data: dict[str, Any], where: str = "") -> Schema:
    """Build the schema variant matching *data*.

    A schema is an enum when it carries an ``enum`` (or ``enumeration``) list.
    """
    enum_key = "enum" if "enum" in data else "enumeration"
    enumeration = _opt_str_list(data, enum_key, where)
    properties = _properties_from(data, where)
    if enumeration is not None:
        return EnumSchema(
            enumeration=enumeration,
            enum_descriptions=_opt_str_list(data, "enumDescriptions", where),
            type=_opt_str(data, "type", where),
            id=_opt_str(data, "id", where),
            properties=properties,
        )
    return ObjectSchema(
        type=_opt_str(data, "type", where),
        id=_opt_str(data, "id", where),
        properties=properties,
    )


@dataclass(frozen=True)
class Parameter:
    """A method parameter."""

    type: str | None = None
    description: str | None = None
    required: bool | None = None
    location: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str = "") -> Parameter:
        required = data.get("required")
        if required is not None and not isinstance(required, bool):
            raise DocumentParseError(f"{where}/required: expected boolean")
        return cls(
            type=_opt_str(data, "type", where),
            description=_opt_str(data, "description", where),
            required=required,
            location=_opt_str(data, "location", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "type": self.type,
                "description": self.description,
                "required": self.required,
                "location": self.location,
            }
        )


@dataclass(frozen=True)
class Method:
    """A single API method.  ``id``, ``path`` and ``http_method`` are required."""

    id: str
    path: str
    http_method: str
    description: str | None = None
    parameters: dict[str, Parameter] | None = None
    request_ref: str | None = None
    response_ref: str | None = None
    scopes: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str = "") -> Method:
        raw_params = _opt_mapping(data, "parameters", where)
        parameters = None
        if raw_params is not None:
            parameters = {
                name: Parameter.from_dict(
                    _as_object(value, f"{where}/parameters/{name}"),
                    f"{where}/parameters/{name}",
                )
                for name, value in raw_params.items()
            }
        return cls(
            id=_req_str(data, "id", where),
            path=_req_str(data, "path", where),
            http_method=_req_str(data, "httpMethod", where),
            description=_opt_str(data, "description", where),
            parameters=parameters,
            request_ref=_ref_of(data, "request", where),
            response_ref=_ref_of(data, "response", where),
            scopes=_opt_str_list(data, "scopes", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "path": self.path,
                "httpMethod": self.http_method,
                "description": self.description,
                "parameters": (
                    {name: param.to_dict() for name, param in self.parameters.items()}
                    if self.parameters is not None
                    else None
                ),
                "request": {"$ref": self.request_ref} if self.request_ref is not None else None,
                "response": {"$ref": self.response_ref} if self.response_ref is not None else None,
                "scopes": list(self.scopes) if self.scopes is not None else None,
            }
        )


@dataclass(frozen=True)
class Resource:
    """A resource groups methods.  Nested resources are not modelled."""

    methods: dict[str, Method] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str = "") -> Resource:
        raw_methods = _opt_mapping(data, "methods", where)
        if raw_methods is None:
            return cls()
        return cls(
            methods={
                name: Method.from_dict(_as_object(value, f"{where}/methods/{name}"), f"{where}/methods/{name}")
                for name, value in raw_methods.items()
            }
        )

    def to_dict(self) -> dict[str, Any]:
        if self.methods is None:
            return {}
        return {"methods": {name: method.to_dict() for name, method in self.methods.items()}}


@dataclass(frozen=True)
class DiscoveryDocument:
    """One snapshot of a service's discovery document."""

    description: str | None = None
    title: str | None = None
    discovery_version: str | None = None
    revision: str | None = None
    owner_domain: str | None = None
    base_url: str | None = None
    documentation_link: str | None = None
    schemas: dict[str, Schema] | None = None
    resources: dict[str, Resource] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiscoveryDocument:
        raw_schemas = _opt_mapping(data, "schemas", "")
        raw_resources = _opt_mapping(data, "resources", "")
        schemas = None
        if raw_schemas is not None:
            schemas = {
                name: schema_from_dict(_as_object(value, f"/schemas/{name}"), f"/schemas/{name}")
                for name, value in raw_schemas.items()
            }
        resources = None
        if raw_resources is not None:
            resources = {
                name: Resource.from_dict(_as_object(value, f"/resources/{name}"), f"/resources/{name}")
                for name, value in raw_resources.items()
            }
        return cls(
            description=_opt_str(data, "description", ""),
            title=_opt_str(data, "title", ""),
            discovery_version=_opt_str(data, "discoveryVersion", ""),
            revision=_opt_str(data, "revision", ""),
            owner_domain=_opt_str(data, "ownerDomain", ""),
            base_url=_opt_str(data, "baseUrl", ""),
            documentation_link=_opt_str(data, "documentationLink", ""),
            schemas=schemas,
            resources=resources,
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "description": self.description,
                "title": self.title,
                "discoveryVersion": self.discovery_version,
                "revision": self.revision,
                "ownerDomain": self.owner_domain,
                "baseUrl": self.base_url,
                "documentationLink": self.documentation_link,
                "schemas": (
                    {name: schema.to_dict() for name, schema in self.schemas.items()}
                    if self.schemas is not None
                    else None
                ),
                "resources": (
                    {name: resource.to_dict() for name, resource in self.resources.items()}
                    if self.resources is not None
                    else None
                ),
            }
        )


def parse_document(content: str | bytes) -> DiscoveryDocument:
    """Parse raw JSON *content* into a DiscoveryDocument.

    Raises:
        DocumentParseError: if the content is not JSON or does not fit the model.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise DocumentParseError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DocumentParseError("document root must be an object")
    return DiscoveryDocument.from_dict(data)
