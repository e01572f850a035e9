"""Route an incoming task to an execution mode (browser, browser + file, or chat only).

Rules are ordered and the first match wins. Each rule carries a fixed reason string
that callers log, so the wording below is part of the contract.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Pattern, Sequence

from .models import TaskType, TaskTypeClassification

# Web interaction is needed.
WEB_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"\b(click|tap|press|select|choose|pick)\b",
        r"\b(fill|enter|type|input|write|set)\s+(in|into|the|a|an)?\s*(form|field|input|text|box)",
        r"\b(navigate|go\s+to|open|visit|browse|load)\s+(the\s+)?(page|site|website|url|link)",
        r"\b(submit|send|confirm|save|post|update)\s+(the\s+)?(form|data|changes)",
        r"\b(scroll|drag|hover|swipe|move)\b",
        r"\b(login|log\s+in|sign\s+in|register|sign\s+up|authenticate)\b",
        r"\b(add|create|delete|remove|update|edit|modify)\s+(a|an|the|new)?\s*\w+\s+(on|to|in|from)\s+(the\s+)?(page|site|form|table|list)",
        r"\b(download|upload|attach)\s+(the\s+)?(file|document|image)",
        r"\bon\s+(the\s+)?(page|website|site|screen|browser)\b",
    )
)

# The task can be answered without a browser.
CHAT_ONLY_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"^(what|how|why|when|where|who|which|can\s+you|could\s+you)\s",
        r"\b(what\s+is|what's|what\s+are|how\s+many|how\s+much)\b",
        r"\b(calculate|sum|total|count|average|analyze|summarize|explain)\b",
        r"^(list|show\s+me|tell\s+me|give\s+me|find)\s+(the\s+)?",
        r"\b(remember|recall|what\s+did\s+(we|I)|previously|earlier|last\s+time)\b",
        r"\b(from\s+the|in\s+the|using\s+the)\s+(file|csv|pdf|document|spreadsheet|data)\b",
        r"\b(extract|parse|read)\s+(from|the)\s+(file|csv|pdf|document)\b",
        r"\b(answer|respond|reply)\s+(with|to)\b",
        r"\b(what\s+does|define|meaning\s+of|explain)\b",
    )
)

# The attached file feeds a web interaction.
WEB_WITH_FILE_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"\b(fill|enter|input|type)\s+.*(from|using|with)\s+(the\s+)?(file|csv|pdf|data|document)",
        r"\b(upload|attach)\s+(the\s+)?(file|csv|pdf|document|data)",
        r"\b(use|using)\s+(the\s+)?(file|csv|pdf|document|data)\s+(to|for)\s+(fill|input|submit)",
        r"\b(import|load)\s+(the\s+)?(data|file)\s+(into|to)\s+(the\s+)?(form|page|site)",
    )
)

MEMORY_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"\b(what\s+did\s+(we|you|I))\b",
        r"\b(remember|recall)\s+(when|what|the)\b",
        r"\b(previously|earlier|before|last\s+time)\s+(we|you|I)?\s*(mentioned|said|discussed|talked|did)",
        r"\b(our\s+previous|earlier)\s+(conversation|discussion|chat)",
        r"\bhistory\s+of\s+(our|the)\b",
        r"\b(what\s+tasks|which\s+tasks)\s+(did|have)\s+(we|I)\s+(complete|do|finish)",
    )
)

REASON_EXPLICIT_FILE_WEB = "Query explicitly mentions using file data for web interaction"
REASON_WEB_WITH_ATTACHMENT = "Query mentions web interaction with file attachment present"
REASON_FILE_ANALYSIS = "Query asks for file analysis/information without web interaction"
REASON_DIRECT_QUESTION = "Query is a question/analysis that doesn't require browser"
REASON_MEMORY = "Query references previous conversation or stored memory"
REASON_WEB_WITH_URL = "Query indicates web interaction is required"
REASON_WEB_NO_URL = "Query indicates web interaction but no URL provided"
REASON_URL_DEFAULT = "URL provided, defaulting to web interaction"
REASON_AMBIGUOUS = "No clear web interaction needed, treating as direct question"

_EXTRACTABLE_MIME_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "text/plain",
    "text/markdown",
    "text/html",
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/json",
    "application/xml",
    "text/xml",
}


def classify_task_type(
    query: str,
    has_attachment: bool = False,
    has_url: bool = False,
    attachment_mime_type: Optional[str] = None,
    session_memory: Optional[Mapping[str, Any]] = None,
) -> TaskTypeClassification:
    """
    Classify a task into ``web_only``, ``web_with_file`` or ``chat_only``.

    ``attachment_mime_type`` and ``session_memory`` are accepted for callers that
    already have them; routing currently depends on the query text and the two flags.
    """

    text = query or ""
    has_attachment = bool(has_attachment)
    has_url = bool(has_url)

    web = _matches_any(WEB_PATTERNS, text)
    chat = _matches_any(CHAT_ONLY_PATTERNS, text)
    web_with_file = _matches_any(WEB_WITH_FILE_PATTERNS, text)
    memory = is_memory_query(text)
    web_type: TaskType = "web_with_file" if has_attachment else "web_only"

    if has_attachment and (web_with_file or (web and not chat)):
        if web_with_file:
            return _result("web_with_file", 0.95, REASON_EXPLICIT_FILE_WEB, has_attachment)
        return _result("web_with_file", 0.8, REASON_WEB_WITH_ATTACHMENT, has_attachment)
    if has_attachment and chat and not web:
        return _result("chat_only", 0.9, REASON_FILE_ANALYSIS, has_attachment)
    # Recall questions also look like plain questions; let the memory rule name them.
    if not has_url and not has_attachment and chat and not web and not memory:
        return _result("chat_only", 0.85, REASON_DIRECT_QUESTION, has_attachment)
    if memory and not web:
        return _result("chat_only", 0.9, REASON_MEMORY, has_attachment)
    if web and has_url:
        return _result(web_type, 0.85, REASON_WEB_WITH_URL, has_attachment)
    if web:
        return _result(web_type, 0.6, REASON_WEB_NO_URL, has_attachment)
    if has_url:
        return _result(web_type, 0.7, REASON_URL_DEFAULT, has_attachment)
    return _result("chat_only", 0.5, REASON_AMBIGUOUS, has_attachment)


def is_memory_query(query: str) -> bool:
    return _matches_any(MEMORY_PATTERNS, query or "")


def is_extractable_file_type(mime_type: str) -> bool:
    """Return True when text can be pulled out of an attachment of this type."""
    if not mime_type:
        return False
    lowered = mime_type.lower()
    return lowered in _EXTRACTABLE_MIME_TYPES or lowered.startswith("text/")


def get_file_category(mime_type: str) -> str:
    lowered = (mime_type or "").lower()
    if "pdf" in lowered or "word" in lowered or "document" in lowered:
        return "document"
    if "csv" in lowered or "excel" in lowered or "spreadsheet" in lowered:
        return "spreadsheet"
    if "json" in lowered or "xml" in lowered:
        return "data"
    return "other"


def _matches_any(patterns: Sequence[Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def _result(task_type: TaskType, confidence: float, reason: str, has_attachment: bool) -> TaskTypeClassification:
    return TaskTypeClassification(
        task_type=task_type,
        confidence=confidence,
        reason=reason,
        requires_browser=task_type != "chat_only",
        has_file_context=has_attachment,
    )


__all__ = [
    "WEB_PATTERNS",
    "CHAT_ONLY_PATTERNS",
    "WEB_WITH_FILE_PATTERNS",
    "MEMORY_PATTERNS",
    "classify_task_type",
    "is_memory_query",
    "is_extractable_file_type",
    "get_file_category",
]
