"""Reduce page markup to its interactive surface: controls and alert/toast text.

Only elements a user can act on and messages the page shows in response are kept,
so clocks, ad rotations and layout churn never register as a page change.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup, Tag

from .models import ElementDescriptor, SemanticSkeleton

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 50
MAX_HREF_LENGTH = 80

INTERACTIVE_SELECTOR = (
    "button, a[href], input, select, textarea, [role='button'], [role='link'], [role='menuitem']"
)
ALERT_SELECTOR = "[role='alert'], .toast, .error, .success, .alert, [data-toast]"

_WHITESPACE = re.compile(r"\s+")


def extract_semantic_skeleton(markup: str) -> SemanticSkeleton:
    """
    Build a skeleton from raw page markup.

    Interactive elements are keyed by id, then name, then aria-label, then ``el-<index>``
    (index among interactive elements in document order). Alerts are keyed ``alert-<index>``.
    A later element with the same key replaces an earlier one.
    """

    skeleton: SemanticSkeleton = {}
    if not markup:
        return skeleton
    soup = BeautifulSoup(markup, "lxml")

    for index, element in enumerate(soup.select(INTERACTIVE_SELECTOR)):
        key = _element_key(element, index)
        skeleton[key] = _describe(element)

    for index, element in enumerate(soup.select(ALERT_SELECTOR)):
        text = _normalize_text(element.get_text())
        if text:
            skeleton[f"alert-{index}"] = text

    logger.debug("Extracted skeleton with %s entries", len(skeleton))
    return skeleton


def serialize_skeleton(skeleton: SemanticSkeleton) -> Dict[str, Any]:
    """Plain JSON-ready form of a skeleton, suitable for storing on a before state."""
    return {
        key: entry.as_dict() if isinstance(entry, ElementDescriptor) else entry
        for key, entry in skeleton.items()
    }


def _describe(element: Tag) -> ElementDescriptor:
    tag = (element.name or "unknown").lower()
    text = _normalize_text(element.get_text())
    if not text and tag == "input":
        text = (_attr(element, "placeholder") or "")[:MAX_TEXT_LENGTH]
    href = _attr(element, "href")
    return ElementDescriptor(
        tag=tag,
        text=text or None,
        value=_attr(element, "value"),
        disabled=True if element.has_attr("disabled") else None,
        aria_expanded=_attr(element, "aria-expanded") or None,
        href=href[:MAX_HREF_LENGTH] if href else None,
        role=_attr(element, "role") or None,
    )


def _element_key(element: Tag, index: int) -> str:
    """Empty attribute values count as absent, so ``id=""`` falls through to the next candidate."""
    for attribute in ("id", "name", "aria-label"):
        candidate = _attr(element, attribute)
        if candidate:
            return candidate
    return f"el-{index}"


def _attr(element: Tag, name: str) -> Optional[str]:
    value = element.get(name)
    if value is None:
        return None
    # bs4 returns multi-valued attributes (class, rel) as lists.
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _normalize_text(raw: str) -> str:
    return _WHITESPACE.sub(" ", (raw or "").strip())[:MAX_TEXT_LENGTH]


__all__ = [
    "MAX_TEXT_LENGTH",
    "MAX_HREF_LENGTH",
    "INTERACTIVE_SELECTOR",
    "ALERT_SELECTOR",
    "extract_semantic_skeleton",
    "serialize_skeleton",
]
