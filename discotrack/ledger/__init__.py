"""Change ledger for discotrack.

Turns successive discovery document snapshots into durable, queryable
change history.

Submodules:
    diff        -- Structural diff producing a path-addressed ChangeSet.
    classifier  -- Semantic tags (new_method, removed_method) for a ChangeSet.
    change_log  -- Append-only LoggedChange store, one JSON file per event.
"""

from discotrack.ledger.change_log import ChangeLog
from discotrack.ledger.classifier import classify
from discotrack.ledger.diff import diff

__all__ = ["ChangeLog", "classify", "diff"]
