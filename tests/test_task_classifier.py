import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from agent_gate.task_classifier import (  # noqa: E402
    classify_task_type,
    get_file_category,
    is_extractable_file_type,
    is_memory_query,
)


def test_memory_question_is_chat_only():
    result = classify_task_type("What did we discuss yesterday?", has_attachment=False, has_url=False)

    assert result.task_type == "chat_only"
    assert result.confidence == 0.9
    assert result.reason == "Query references previous conversation or stored memory"
    assert result.requires_browser is False


def test_click_with_url_is_web_only():
    result = classify_task_type("Click the submit button on the form", has_attachment=False, has_url=True)

    assert result.task_type == "web_only"
    assert result.confidence == 0.85
    assert result.requires_browser is True
    assert result.has_file_context is False


def test_explicit_file_to_form_is_web_with_file():
    result = classify_task_type("Fill the form using the csv", has_attachment=True, has_url=True)

    assert result.task_type == "web_with_file"
    assert result.confidence == 0.95
    assert result.has_file_context is True


def test_generic_web_action_with_attachment():
    result = classify_task_type("Click the next button", has_attachment=True, has_url=False)

    assert result.task_type == "web_with_file"
    assert result.confidence == 0.8


def test_file_analysis_without_web_is_chat_only():
    result = classify_task_type("Summarize the attached report", has_attachment=True, has_url=False)

    assert result.task_type == "chat_only"
    assert result.confidence == 0.9
    assert result.requires_browser is False


def test_plain_question_without_context():
    result = classify_task_type("How many days are in a leap year?", has_attachment=False, has_url=False)

    assert result.task_type == "chat_only"
    assert result.confidence == 0.85


def test_web_pattern_without_url_has_lower_confidence():
    result = classify_task_type("Log in and scroll to the pricing table", has_attachment=False, has_url=False)

    assert result.task_type == "web_only"
    assert result.confidence == 0.6
    assert result.reason == "Query indicates web interaction but no URL provided"


def test_url_without_pattern_defaults_to_web():
    result = classify_task_type("Acme dashboard weekly numbers", has_attachment=False, has_url=True)

    assert result.task_type == "web_only"
    assert result.confidence == 0.7
    assert result.reason == "URL provided, defaulting to web interaction"


def test_ambiguous_query_falls_back_to_chat():
    result = classify_task_type("Quarterly numbers", has_attachment=False, has_url=False)

    assert result.task_type == "chat_only"
    assert result.confidence == 0.5
    assert result.reason == "No clear web interaction needed, treating as direct question"


def test_url_present_question_with_web_words_routes_to_web():
    result = classify_task_type("Can you click the login link?", has_attachment=False, has_url=True)

    assert result.task_type == "web_only"
    assert result.confidence == 0.85


def test_classification_is_deterministic():
    first = classify_task_type("Upload the file to the portal", has_attachment=True, has_url=True)
    second = classify_task_type("Upload the file to the portal", has_attachment=True, has_url=True)

    assert first == second


def test_empty_query_never_raises():
    result = classify_task_type("", has_attachment=False, has_url=False)

    assert result.task_type == "chat_only"
    assert result.confidence == 0.5


@pytest.mark.parametrize(
    "query",
    [
        "What did you find last week?",
        "Remember the vendor list we used",
        "Earlier we discussed pricing",
        "Which tasks did we complete on Monday",
    ],
)
def test_memory_patterns(query):
    assert is_memory_query(query)


def test_extractable_file_types():
    assert is_extractable_file_type("application/pdf")
    assert is_extractable_file_type("text/x-log")
    assert not is_extractable_file_type("image/png")
    assert not is_extractable_file_type("")


def test_file_categories():
    assert get_file_category("application/pdf") == "document"
    assert get_file_category("text/csv") == "spreadsheet"
    assert get_file_category("application/json") == "data"
    assert get_file_category("image/png") == "other"
