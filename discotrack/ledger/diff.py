"""Structural diff between two discovery document snapshots.

``diff(old, new, service)`` walks both documents level by level and returns
a path-addressed ``ChangeSet``.  It is pure and never raises: absent fields
and absent maps are valid inputs.

Path conventions:

* Top-level metadata fields use the bare field name (``revision``,
  ``baseUrl``) with no leading slash.
* Everything nested starts with a slash (``/schemas/Foo/properties/bar``).
* Keys are joined with ``/`` verbatim; a key that itself contains ``/`` is
  not escaped.

Payload policy per level:

* schemas, properties -- one-sided entries carry the whole serialised value
  on addition and on deletion.
* resources, methods, parameters -- one-sided entries carry the whole value
  on addition, but deletions carry no payload at all.

Entry order inside each sequence follows mapping iteration order and is not
part of the contract.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from discotrack.models.changes import Change, ChangeSet
from discotrack.models.document import (
    DiscoveryDocument,
    EnumSchema,
    Method,
    ObjectSchema,
    Parameter,
    Property,
    Resource,
    Schema,
)

T = TypeVar("T")

# (path, attribute) pairs compared as scalars at document level.
_TOP_LEVEL_FIELDS: tuple[tuple[str, str], ...] = (
    ("description", "description"),
    ("title", "title"),
    ("discoveryVersion", "discovery_version"),
    ("revision", "revision"),
    ("ownerDomain", "owner_domain"),
    ("baseUrl", "base_url"),
    ("documentationLink", "documentation_link"),
)


class _ChangeCollector:
    """Accumulates changes into the three output sequences."""

    def __init__(self) -> None:
        self.additions: list[Change] = []
        self.modifications: list[Change] = []
        self.deletions: list[Change] = []

    def field(self, path: str, old: Any, new: Any) -> None:
        """Compare two optional scalar-or-structured values at *path*."""
        if old is None and new is None:
            return
        if old is None:
            self.additions.append(Change.added(path, _jsonable(new)))
        elif new is None:
            self.deletions.append(Change.removed(path, _jsonable(old)))
        elif old != new:
            self.modifications.append(Change.modified(path, _jsonable(old), _jsonable(new)))

    def build(self, service: str) -> ChangeSet:
        return ChangeSet(
            service=service,
            additions=tuple(self.additions),
            modifications=tuple(self.modifications),
            deletions=tuple(self.deletions),
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value


def _ref(name: str | None) -> dict[str, str] | None:
    return {"$ref": name} if name is not None else None


def _diff_mapping(
    out: _ChangeCollector,
    path: str,
    old: Mapping[str, T] | None,
    new: Mapping[str, T] | None,
    compare: Callable[[_ChangeCollector, str, T, T], None],
    serialize: Callable[[T], Any],
    deletion_payload: bool,
) -> None:
    """Keyed diff of two optional mappings rooted at *path*.

    Keys on both sides are handed to *compare*.  One-sided keys become a
    single addition (always with payload) or deletion (payload only when
    *deletion_payload*).  A mapping absent on one side is reported once for
    the whole map at *path*.
    """
    if old is None and new is None:
        return
    if old is None:
        assert new is not None
        out.additions.append(Change.added(path, {k: serialize(v) for k, v in new.items()}))
        return
    if new is None:
        payload = {k: serialize(v) for k, v in old.items()} if deletion_payload else None
        out.deletions.append(Change.removed(path, payload))
        return

    for key, new_item in new.items():
        item_path = f"{path}/{key}"
        if key in old:
            compare(out, item_path, old[key], new_item)
        else:
            out.additions.append(Change.added(item_path, serialize(new_item)))
    for key, old_item in old.items():
        if key not in new:
            item_path = f"{path}/{key}"
            out.deletions.append(Change.removed(item_path, serialize(old_item) if deletion_payload else None))


def _compare_property(out: _ChangeCollector, path: str, old: Property, new: Property) -> None:
    out.field(f"{path}/type", old.type, new.type)
    out.field(f"{path}/$ref", old.ref, new.ref)
    out.field(f"{path}/format", old.format, new.format)
    out.field(f"{path}/description", old.description, new.description)


def _compare_properties(
    out: _ChangeCollector,
    path: str,
    old: Mapping[str, Property] | None,
    new: Mapping[str, Property] | None,
) -> None:
    _diff_mapping(
        out,
        f"{path}/properties",
        old,
        new,
        _compare_property,
        Property.to_dict,
        deletion_payload=True,
    )


def _compare_schema(out: _ChangeCollector, path: str, old: Schema, new: Schema) -> None:
    if isinstance(old, ObjectSchema) and isinstance(new, ObjectSchema):
        out.field(f"{path}/type", old.type, new.type)
        out.field(f"{path}/id", old.id, new.id)
        _compare_properties(out, path, old.properties, new.properties)
    elif isinstance(old, EnumSchema) and isinstance(new, EnumSchema):
        out.field(f"{path}/type", old.type, new.type)
        out.field(f"{path}/id", old.id, new.id)
        _compare_properties(out, path, old.properties, new.properties)
        # Both sequences are reported whole; enumDescriptions[i] pairs with enumeration[i].
        out.field(f"{path}/enumeration", old.enumeration, new.enumeration)
        out.field(f"{path}/enumDescriptions", old.enum_descriptions, new.enum_descriptions)
    else:
        # Variant changed: no field-level decomposition across variants.
        out.modifications.append(Change.modified(path, old.to_dict(), new.to_dict()))


def _serialize_schema(schema: Schema) -> dict[str, Any]:
    return schema.to_dict()


def _compare_parameter(out: _ChangeCollector, path: str, old: Parameter, new: Parameter) -> None:
    out.field(f"{path}/type", old.type, new.type)
    out.field(f"{path}/description", old.description, new.description)
    out.field(f"{path}/required", old.required, new.required)
    out.field(f"{path}/location", old.location, new.location)


def _compare_method(out: _ChangeCollector, path: str, old: Method, new: Method) -> None:
    out.field(f"{path}/id", old.id, new.id)
    out.field(f"{path}/path", old.path, new.path)
    out.field(f"{path}/httpMethod", old.http_method, new.http_method)
    out.field(f"{path}/description", old.description, new.description)
    _diff_mapping(
        out,
        f"{path}/parameters",
        old.parameters,
        new.parameters,
        _compare_parameter,
        Parameter.to_dict,
        deletion_payload=False,
    )
    out.field(f"{path}/request", _ref(old.request_ref), _ref(new.request_ref))
    out.field(f"{path}/response", _ref(old.response_ref), _ref(new.response_ref))
    out.field(f"{path}/scopes", old.scopes, new.scopes)


def _compare_resource(out: _ChangeCollector, path: str, old: Resource, new: Resource) -> None:
    _diff_mapping(
        out,
        f"{path}/methods",
        old.methods,
        new.methods,
        _compare_method,
        Method.to_dict,
        deletion_payload=False,
    )


def diff(old: DiscoveryDocument, new: DiscoveryDocument, service: str) -> ChangeSet:
    """Compare two snapshots of *service* and return every structural change."""
    out = _ChangeCollector()

    for path, attr in _TOP_LEVEL_FIELDS:
        out.field(path, getattr(old, attr), getattr(new, attr))

    _diff_mapping(
        out,
        "/schemas",
        old.schemas,
        new.schemas,
        _compare_schema,
        _serialize_schema,
        deletion_payload=True,
    )
    _diff_mapping(
        out,
        "/resources",
        old.resources,
        new.resources,
        _compare_resource,
        Resource.to_dict,
        deletion_payload=False,
    )

    return out.build(service)
