from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from agent_gate.diff_engine import diff_skeletons, get_granular_observation  # noqa: E402
from agent_gate.models import ElementDescriptor  # noqa: E402
from agent_gate.skeleton import extract_semantic_skeleton, serialize_skeleton  # noqa: E402

CHECKOUT_PAGE = """
<html>
  <body>
    <header><span class="clock">12:00:01</span></header>
    <form>
      <input id="email" type="email" placeholder="Work email address">
      <input name="qty" value="2">
      <select aria-label="Country"><option>US</option></select>
      <button id="submit">  Place
         order </button>
      <button disabled>Apply coupon</button>
    </form>
    <a href="/terms">Terms</a>
    <a>No href</a>
    <div role="menuitem" aria-expanded="false">Account</div>
    <div class="toast">Saved to cart</div>
  </body>
</html>
"""


def test_extracts_interactive_elements_with_key_priority() -> None:
    skeleton = extract_semantic_skeleton(CHECKOUT_PAGE)

    assert skeleton["email"] == ElementDescriptor(tag="input", text="Work email address")
    assert skeleton["qty"] == ElementDescriptor(tag="input", value="2")
    assert skeleton["Country"].tag == "select"
    assert skeleton["submit"] == ElementDescriptor(tag="button", text="Place order")


def test_positional_keys_and_optional_fields() -> None:
    skeleton = extract_semantic_skeleton(CHECKOUT_PAGE)

    # email, qty, Country, submit come first in document order.
    assert skeleton["el-4"].as_dict() == {"tag": "button", "text": "Apply coupon", "disabled": True}
    assert skeleton["el-5"].as_dict() == {"tag": "a", "text": "Terms", "href": "/terms"}
    assert skeleton["el-6"].as_dict() == {
        "tag": "div",
        "text": "Account",
        "ariaExpanded": "false",
        "role": "menuitem",
    }
    assert "el-7" not in skeleton


def test_anchor_without_href_and_clock_are_ignored() -> None:
    skeleton = extract_semantic_skeleton(CHECKOUT_PAGE)

    texts = [entry.text if isinstance(entry, ElementDescriptor) else entry for entry in skeleton.values()]
    assert "No href" not in texts
    assert "12:00:01" not in texts


def test_alerts_are_keyed_by_position() -> None:
    skeleton = extract_semantic_skeleton(CHECKOUT_PAGE)

    assert skeleton["alert-0"] == "Saved to cart"


def test_text_and_href_are_truncated() -> None:
    long_text = "word " * 30
    long_href = "https://example.test/" + "a" * 200
    skeleton = extract_semantic_skeleton(f'<button id="b">{long_text}</button><a id="l" href="{long_href}">x</a>')

    assert len(skeleton["b"].text) == 50
    assert len(skeleton["l"].href) == 80


def test_empty_markup_gives_empty_skeleton() -> None:
    assert extract_semantic_skeleton("") == {}


def test_same_markup_twice_has_no_observations() -> None:
    before = extract_semantic_skeleton(CHECKOUT_PAGE)
    after = extract_semantic_skeleton(CHECKOUT_PAGE)

    assert get_granular_observation(before, after) == []


def test_clock_tick_does_not_register_as_change() -> None:
    before = extract_semantic_skeleton(CHECKOUT_PAGE)
    after = extract_semantic_skeleton(CHECKOUT_PAGE.replace("12:00:01", "12:00:02"))

    assert get_granular_observation(before, after) == []


def test_text_change_observation() -> None:
    before = {"submit": {"tag": "button", "text": "Save"}}
    after = {"submit": {"tag": "button", "text": "Saved"}}

    assert get_granular_observation(before, after) == ["Element 'submit' changed 'text' from 'Save' to 'Saved'"]


def test_new_alert_observation() -> None:
    assert get_granular_observation({}, {"alert-0": "Payment failed"}) == [
        'New message/alert appeared: "Payment failed"'
    ]


def test_created_and_removed_elements() -> None:
    before = {"cancel": ElementDescriptor(tag="button", text="Cancel")}
    after = {
        "confirm": ElementDescriptor(tag="button", text="Confirm"),
        "el-3": ElementDescriptor(tag="input"),
    }

    assert get_granular_observation(before, after) == [
        "Element disappeared: cancel",
        'New element appeared: confirm ("Confirm")',
        "New element appeared: el-3",
    ]


def test_button_becoming_disabled() -> None:
    before = extract_semantic_skeleton('<button id="pay">Pay</button>')
    after = extract_semantic_skeleton('<button id="pay" disabled>Pay</button>')

    assert get_granular_observation(before, after) == ["New element appeared: pay"]


def test_attribute_vanishing_reports_element_disappeared() -> None:
    before = {"pay": {"tag": "button", "text": "Pay", "disabled": True}}
    after = {"pay": {"tag": "button", "text": "Pay"}}

    assert get_granular_observation(before, after) == ["Element disappeared: pay"]


def test_empty_identifiers_fall_through_to_next_key() -> None:
    skeleton = extract_semantic_skeleton('<input id="" name="email"><button id="" aria-label="">Go</button>')

    assert set(skeleton) == {"email", "el-1"}


def test_alert_text_change_uses_content_attribute() -> None:
    observations = get_granular_observation({"alert-0": "Saving"}, {"alert-0": "Saved"})

    assert observations == ["Element 'alert-0' changed 'content' from 'Saving' to 'Saved'"]


def test_diff_preserves_discovery_order() -> None:
    before = {"a": {"tag": "button", "text": "One"}, "b": "Old alert"}
    after = {"c": "New alert", "b": "Old alert", "a": {"tag": "button", "text": "Two", "value": "x"}}

    changes = diff_skeletons(before, after)

    assert [(change.type, change.path) for change in changes] == [
        ("CHANGE", ("a", "text")),
        ("CREATE", ("a", "value")),
        ("CREATE", ("c",)),
    ]


def test_serialized_skeleton_diffs_against_live_skeleton() -> None:
    stored = serialize_skeleton(extract_semantic_skeleton(CHECKOUT_PAGE))
    current = extract_semantic_skeleton(CHECKOUT_PAGE.replace('value="2"', 'value="3"'))

    assert get_granular_observation(stored, current) == ["Element 'qty' changed 'value' from '2' to '3'"]
