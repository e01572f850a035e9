"""Structural diff between two semantic skeletons and its human-readable rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Tuple, Union

from .models import ElementDescriptor

logger = logging.getLogger(__name__)

DiffType = Literal["CREATE", "REMOVE", "CHANGE"]

_MISSING = object()


@dataclass(frozen=True)
class DiffItem:
    type: DiffType
    path: Tuple[str, ...]
    old_value: Any = None
    value: Any = None


def diff_skeletons(before: Mapping[str, Any], after: Mapping[str, Any]) -> List[DiffItem]:
    """
    Diff two skeletons in discovery order.

    Keys of ``before`` are walked first (removals and changes, descending into
    descriptors attribute by attribute), then keys only present in ``after`` are
    reported as creations. Skeletons are one level deep, so no further recursion.
    """

    changes: List[DiffItem] = []
    for key, old in before.items():
        new = after.get(key, _MISSING)
        if new is _MISSING:
            changes.append(DiffItem("REMOVE", (key,), old_value=_plain(old)))
            continue
        old_plain, new_plain = _plain(old), _plain(new)
        if isinstance(old_plain, dict) and isinstance(new_plain, dict):
            changes.extend(_diff_descriptor(key, old_plain, new_plain))
        elif old_plain != new_plain:
            changes.append(DiffItem("CHANGE", (key,), old_value=old_plain, value=new_plain))
    for key, new in after.items():
        if key not in before:
            changes.append(DiffItem("CREATE", (key,), value=_plain(new)))
    return changes


def get_granular_observation(before: Mapping[str, Any], after: Mapping[str, Any]) -> List[str]:
    """Render the skeleton diff as one sentence per change, in diff order."""
    observations = [_render(item) for item in diff_skeletons(before, after)]
    logger.debug("Skeleton diff produced %s observations", len(observations))
    return observations


def _diff_descriptor(key: str, old: Dict[str, Any], new: Dict[str, Any]) -> List[DiffItem]:
    changes: List[DiffItem] = []
    for attribute, old_value in old.items():
        if attribute not in new:
            changes.append(DiffItem("REMOVE", (key, attribute), old_value=old_value))
        elif new[attribute] != old_value:
            changes.append(DiffItem("CHANGE", (key, attribute), old_value=old_value, value=new[attribute]))
    for attribute, value in new.items():
        if attribute not in old:
            changes.append(DiffItem("CREATE", (key, attribute), value=value))
    return changes


def _plain(value: Any) -> Union[Dict[str, Any], Any]:
    if isinstance(value, ElementDescriptor):
        return value.as_dict()
    if isinstance(value, Mapping):
        return {name: item for name, item in value.items() if item is not None}
    return value


def _render(item: DiffItem) -> str:
    key = item.path[0]
    if item.type == "CREATE":
        if isinstance(item.value, str):
            return f'New message/alert appeared: "{item.value}"'
        text = item.value.get("text") if isinstance(item.value, dict) else None
        if text:
            return f'New element appeared: {key} ("{text}")'
        return f"New element appeared: {key}"
    if item.type == "REMOVE":
        return f"Element disappeared: {key}"
    attribute = item.path[1] if len(item.path) > 1 else "content"
    return _render_change(key, attribute, item.old_value, item.value)


def _render_change(key: str, attribute: str, old: Any, new: Any) -> str:
    return f"Element '{key}' changed '{attribute}' from '{_format_value(old)}' to '{_format_value(new)}'"


def _format_value(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        return str(value.get("text") or value.get("tag") or "element")
    return str(value)


__all__ = ["DiffItem", "diff_skeletons", "get_granular_observation"]
