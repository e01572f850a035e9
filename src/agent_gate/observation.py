"""Build the list of observed changes used to verify an action's effect."""

from __future__ import annotations

import hashlib
import logging
from typing import List, Optional

from .diff_engine import get_granular_observation
from .models import BeforeState, ClientObservations, ObservationList
from .skeleton import extract_semantic_skeleton

logger = logging.getLogger(__name__)


def hash_dom(markup: str) -> str:
    return hashlib.sha256((markup or "").encode("utf-8")).hexdigest()


def build_observation_list(
    before_state: BeforeState,
    after_url: str,
    after_dom_hash: str,
    after_active_element: Optional[str] = None,
    client_observations: Optional[ClientObservations] = None,
    current_dom: Optional[str] = None,
) -> ObservationList:
    """
    Compare the captured before state against the page after the action.

    The skeleton diff is used whenever the before state carries a skeleton and the
    current markup is available; a changed DOM hash with an empty skeleton diff is
    reported but not counted as a meaningful change.
    """

    observations: List[str] = []
    meaningful = False

    if before_state.url != after_url:
        observations.append(f"Navigation occurred: URL changed from {before_state.url} to {after_url}")
        meaningful = True
    else:
        observations.append("URL did not change")

    dom_changed = before_state.dom_hash != after_dom_hash
    granular: Optional[List[str]] = None
    if before_state.semantic_skeleton is not None and current_dom:
        try:
            after_skeleton = extract_semantic_skeleton(current_dom)
            granular = get_granular_observation(before_state.semantic_skeleton, after_skeleton)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Skeleton diff failed; falling back to DOM hash comparison: %s", exc)

    if granular:
        observations.extend(granular)
        meaningful = True
    elif granular is not None:
        if dom_changed:
            observations.append("Page content updated (DOM changed; no interactive element changes detected)")
        else:
            observations.append("Page content did not change (no interactive element or alert changes)")
    elif dom_changed:
        observations.append("Page content updated (DOM changed)")
        meaningful = True
    else:
        observations.append("Page content did not change (DOM hash identical)")

    if before_state.active_element is not None or after_active_element is not None:
        if before_state.active_element != after_active_element:
            observations.append(
                f'Focus/active element changed from "{before_state.active_element or "none"}" '
                f'to "{after_active_element or "none"}"'
            )

    if client_observations is not None:
        if client_observations.did_network_occur:
            observations.append("Background network activity detected (extension witnessed)")
        if client_observations.did_dom_mutate:
            observations.append("DOM was mutated (extension witnessed)")
        if client_observations.did_url_change is not None:
            observations.append(
                f"Extension reported URL changed: {str(client_observations.did_url_change).lower()}"
            )

    return ObservationList(observations=observations, meaningful_content_change=meaningful)


__all__ = ["build_observation_list", "hash_dom"]
