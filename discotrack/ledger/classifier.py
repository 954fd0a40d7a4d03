"""Semantic tags for a change set.

Two independent predicates, each scanning one sequence:

* ``new_method``     -- an addition whose path has at least four ``/``
  segments with ``methods`` second-to-last, carrying a value and no
  old value.
* ``removed_method`` -- the mirror image over deletions: an old value and
  no value.

Method deletions are emitted by the differ without any payload, so a bare
method removal does not satisfy ``removed_method``.  The predicate is kept
as is; consumers depend on the current tag semantics.
"""

from __future__ import annotations

from collections.abc import Iterable

from discotrack.models.changes import Change, ChangeSet, ChangeTag


def _is_method_path(path: str) -> bool:
    segments = path.split("/")
    return len(segments) >= 4 and segments[-2] == "methods"


def _has_new_method(additions: Iterable[Change]) -> bool:
    return any(
        _is_method_path(c.path) and c.value is not None and c.old_value is None
        for c in additions
    )


def _has_removed_method(deletions: Iterable[Change]) -> bool:
    return any(
        _is_method_path(c.path) and c.old_value is not None and c.value is None
        for c in deletions
    )


def classify(change_set: ChangeSet) -> frozenset[str]:
    """Return the set of tag values that apply to *change_set*."""
    tags: set[str] = set()
    if _has_new_method(change_set.additions):
        tags.add(ChangeTag.NEW_METHOD.value)
    if _has_removed_method(change_set.deletions):
        tags.add(ChangeTag.REMOVED_METHOD.value)
    return frozenset(tags)
