"""discotrack: polls API discovery documents and records how they change."""

__version__ = "0.1.0"
