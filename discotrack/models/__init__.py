"""Core data structures for discotrack."""

from discotrack.models.changes import (
    Change,
    ChangeSet,
    ChangeSummary,
    ChangeTag,
    LoggedChange,
)
from discotrack.models.config import DiscoTrackConfig
from discotrack.models.document import (
    DiscoveryDocument,
    DocumentParseError,
    EnumSchema,
    Method,
    ObjectSchema,
    Parameter,
    Property,
    Resource,
    Schema,
    parse_document,
)

__all__ = [
    "Change",
    "ChangeSet",
    "ChangeSummary",
    "ChangeTag",
    "DiscoTrackConfig",
    "DiscoveryDocument",
    "DocumentParseError",
    "EnumSchema",
    "LoggedChange",
    "Method",
    "ObjectSchema",
    "Parameter",
    "Property",
    "Resource",
    "Schema",
    "parse_document",
]
