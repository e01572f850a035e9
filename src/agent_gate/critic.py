"""Pre-execution critic for proposed browser actions.

A second, cheaper model call checks whether a generated action makes sense for the
user's goal before it is dispatched. The verdict comes only from the ``<Approved>``
tag of the response. Provider and parse failures fail open (approve with confidence 0)
so an evaluation outage never freezes the agent; caller cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from typing import Any, Optional, Set

from openai import AsyncOpenAI

from .config import (
    CRITIC_MAX_OUTPUT_TOKENS,
    CRITIC_MODEL,
    CRITIC_PROVIDER,
    CRITIC_TEMPERATURE,
    get_openai_api_key,
)
from .cost import LoggingUsageLedger, TokenUsage, UsageLedger, calculate_token_cost
from .error_tracking import ErrorReporter, LoggingErrorReporter
from .models import CriticApproval, CriticContext, CriticInput, CriticRejection, CriticResult, UsageRecord

logger = logging.getLogger(__name__)

COMPONENT = "critic-engine"

# Completion, abort and terminal writes always get a second look.
HIGH_RISK_ACTIONS = frozenset({"finish", "fail", "setvalue"})

CONFIDENCE_THRESHOLD = 0.85

DEFAULT_CONFIDENCE = 0.5

SYSTEM_PROMPT = (
    "You are a Critic AI that validates web automation actions before execution.\n\n"
    "Your job is to check if a generated action MAKES SENSE for the user's goal.\n"
    "You are NOT checking syntax - assume syntax is valid.\n"
    "You are checking INTENT and LOGIC.\n\n"
    "Common errors to catch:\n"
    "1. Wrong field type (e.g., entering a date in a name field)\n"
    "2. Wrong element (e.g., clicking \"Cancel\" when trying to submit)\n"
    "3. Premature completion (e.g., calling finish() before all steps done)\n"
    "4. Missing required actions (e.g., not filling required fields)\n"
    "5. Out of order actions (e.g., clicking submit before filling form)\n\n"
    "Respond in this exact format:\n"
    "<Approved>YES or NO</Approved>\n"
    "<Confidence>number between 0.0 and 1.0</Confidence>\n"
    "<Reason>Brief explanation if NO</Reason>\n"
    "<Suggestion>Alternative approach if NO</Suggestion>\n\n"
    "Be LENIENT - only reject if there's a clear logic error.\n"
    "When uncertain, approve with lower confidence."
)

_ACTION_NAME = re.compile(r"^\s*(\w+)\s*\(")
_APPROVED_TAG = re.compile(r"<Approved>\s*(YES|NO)\s*</Approved>", flags=re.IGNORECASE)
_CONFIDENCE_TAG = re.compile(r"<Confidence>(.*?)</Confidence>", flags=re.IGNORECASE | re.DOTALL)
_REASON_TAG = re.compile(r"<Reason>(.*?)</Reason>", flags=re.IGNORECASE | re.DOTALL)
_SUGGESTION_TAG = re.compile(r"<Suggestion>(.*?)</Suggestion>", flags=re.IGNORECASE | re.DOTALL)


class CriticParseError(ValueError):
    """Raised when a critic response carries no usable ``<Approved>`` tag."""


def should_trigger_critic(
    action: str,
    confidence: Optional[float] = None,
    had_verification_failure: bool = False,
) -> bool:
    """
    Decide whether an action needs a critic pass.

    Triggers for high-risk actions, for a supplied confidence strictly below 0.85,
    and after a verification failure. Malformed input never raises.
    """

    if action_name(action) in HIGH_RISK_ACTIONS:
        return True
    if _is_number(confidence) and confidence < CONFIDENCE_THRESHOLD:
        return True
    return bool(had_verification_failure)


def action_name(action: Any) -> str:
    """Lower-cased identifier before the first parenthesis, or '' when there is none."""
    if not isinstance(action, str):
        return ""
    match = _ACTION_NAME.match(action)
    return match.group(1).lower() if match else ""


def parse_critic_response(content: str) -> CriticResult:
    """
    Parse the four-tag critic response.

    ``approved`` comes solely from the ``<Approved>`` tag; prose around it is ignored.
    If several tags are present, a single NO rejects. A missing or unparseable
    confidence falls back to 0.5 and is clamped to [0, 1].
    """

    verdicts = [match.group(1).upper() for match in _APPROVED_TAG.finditer(content or "")]
    if not verdicts:
        raise CriticParseError("Critic response has no <Approved>YES|NO</Approved> tag")
    confidence = _parse_confidence(content)
    if "NO" not in verdicts:
        return CriticApproval(confidence=confidence)
    return CriticRejection(
        confidence=confidence,
        reason=_tag_text(_REASON_TAG, content),
        suggestion=_tag_text(_SUGGESTION_TAG, content),
    )


def build_user_prompt(critic_input: CriticInput) -> str:
    parts = [
        f"User Goal: {critic_input.goal}",
        "",
        f"Generated Action: {critic_input.action}",
        f"LLM Reasoning: {critic_input.thought}",
    ]
    if critic_input.plan_step:
        parts.append(f"Current Plan Step: {critic_input.plan_step}")
    if critic_input.element_description:
        parts.append(f"Target Element: {critic_input.element_description}")
    if critic_input.previous_failure:
        parts.append(f"Previous Failure: {critic_input.previous_failure}")
    parts.append("")
    parts.append("Does this action make sense for the goal? Check for logic errors.")
    return "\n".join(parts)


class CriticEngine:
    """Evaluate proposed actions with an injected OpenAI client, ledger and error reporter."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = CRITIC_MODEL,
        *,
        ledger: Optional[UsageLedger] = None,
        error_reporter: Optional[ErrorReporter] = None,
        provider: str = CRITIC_PROVIDER,
        temperature: float = CRITIC_TEMPERATURE,
        max_output_tokens: int = CRITIC_MAX_OUTPUT_TOKENS,
    ) -> None:
        self.client = client
        self.model = model
        self.ledger: UsageLedger = ledger or LoggingUsageLedger()
        self.error_reporter: ErrorReporter = error_reporter or LoggingErrorReporter()
        self.provider = provider
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._pending_usage: Set[asyncio.Task] = set()

    @classmethod
    def from_env(cls, **kwargs: Any) -> "CriticEngine":
        api_key = get_openai_api_key()
        client = AsyncOpenAI(api_key=api_key) if api_key else None
        return cls(client=client, **kwargs)

    async def run_critic_loop(
        self,
        critic_input: CriticInput,
        context: Optional[CriticContext] = None,
    ) -> CriticResult:
        """Skip the model call when the trigger does not fire; otherwise evaluate.

        Rejections are returned, not retried: regenerating the action is the caller's job.
        """
        if not should_trigger_critic(
            critic_input.action,
            critic_input.confidence,
            bool(critic_input.previous_failure),
        ):
            return CriticApproval(confidence=1.0, duration_ms=0)
        logger.info("Evaluating action: %s", critic_input.action)
        return await self.evaluate_action(critic_input, context)

    async def evaluate_action(
        self,
        critic_input: CriticInput,
        context: Optional[CriticContext] = None,
    ) -> CriticResult:
        started = time.perf_counter()
        extra = {"goal": critic_input.goal, "action": critic_input.action}

        if self.client is None:
            self.error_reporter.capture_exception(
                RuntimeError("OPENAI_API_KEY not configured"), component=COMPONENT, extra=extra
            )
            return CriticApproval(
                confidence=0.0,
                duration_ms=_elapsed_ms(started),
                reason="Critic skipped: API key not configured",
            )

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(critic_input)},
        ]
        logger.debug("Critic prompt: %s", messages[-1]["content"])
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_output_tokens,
            )
            content = response.choices[0].message.content if response.choices else ""
        except Exception as exc:  # noqa: BLE001
            self.error_reporter.capture_exception(exc, component=COMPONENT, extra=extra)
            return CriticApproval(
                confidence=0.0,
                duration_ms=_elapsed_ms(started),
                reason="Critic error - failing open",
            )

        duration_ms = _elapsed_ms(started)
        logger.debug("Critic raw response: %s", content)
        try:
            result = parse_critic_response(content or "")
        except CriticParseError as exc:
            self.error_reporter.capture_exception(exc, component=COMPONENT, extra=extra)
            result = CriticApproval(confidence=0.0, reason="Critic parse error - failing open")
        result = result.model_copy(update={"duration_ms": duration_ms})

        self._schedule_usage(response, critic_input, context, duration_ms, result.approved)

        if not result.approved:
            logger.info(
                "Action rejected: %s | Reason: %s | Suggestion: %s",
                critic_input.action,
                result.reason,
                result.suggestion,
            )
        return result

    async def flush_usage(self) -> None:
        """Wait for usage records still being written, e.g. before shutdown."""
        if self._pending_usage:
            await asyncio.gather(*list(self._pending_usage), return_exceptions=True)

    def _schedule_usage(
        self,
        response: Any,
        critic_input: CriticInput,
        context: Optional[CriticContext],
        duration_ms: int,
        approved: bool,
    ) -> None:
        if context is None or not context.tenant_id or not context.user_id:
            return
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", None) if usage is not None else None
        if prompt_tokens is None:
            return
        try:
            tokens = TokenUsage(
                input_tokens=prompt_tokens or 0,
                output_tokens=getattr(usage, "completion_tokens", None) or 0,
            )
            record = UsageRecord(
                tenant_id=context.tenant_id,
                user_id=context.user_id,
                session_id=context.session_id,
                task_id=context.task_id,
                trace_id=context.trace_id,
                provider=self.provider,
                model=self.model,
                action_type="CRITIC",
                input_tokens=tokens.input_tokens,
                output_tokens=tokens.output_tokens,
                duration_ms=duration_ms,
                cost=calculate_token_cost(self.provider, self.model, tokens),
                metadata={"goal": critic_input.goal, "action": critic_input.action, "approved": approved},
            )
            task = asyncio.get_running_loop().create_task(self._record_usage(record))
        except Exception:  # noqa: BLE001
            logger.exception("Cost tracking error")
            return
        self._pending_usage.add(task)
        task.add_done_callback(self._pending_usage.discard)

    async def _record_usage(self, record: UsageRecord) -> None:
        try:
            await self.ledger.record_usage(record)
        except Exception:  # noqa: BLE001
            logger.exception("Cost tracking error")


async def evaluate_action(
    critic_input: CriticInput,
    context: Optional[CriticContext] = None,
    *,
    engine: Optional[CriticEngine] = None,
) -> CriticResult:
    return await (engine or CriticEngine.from_env()).evaluate_action(critic_input, context)


async def run_critic_loop(
    critic_input: CriticInput,
    context: Optional[CriticContext] = None,
    *,
    engine: Optional[CriticEngine] = None,
) -> CriticResult:
    return await (engine or CriticEngine.from_env()).run_critic_loop(critic_input, context)


def _parse_confidence(content: str) -> float:
    match = _CONFIDENCE_TAG.search(content)
    if not match:
        return DEFAULT_CONFIDENCE
    try:
        value = float(match.group(1).strip())
    except ValueError:
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, value))


def _tag_text(pattern: re.Pattern[str], content: str) -> Optional[str]:
    match = pattern.search(content)
    if not match:
        return None
    return match.group(1).strip() or None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = [
    "COMPONENT",
    "HIGH_RISK_ACTIONS",
    "CONFIDENCE_THRESHOLD",
    "CriticEngine",
    "CriticParseError",
    "action_name",
    "build_user_prompt",
    "evaluate_action",
    "parse_critic_response",
    "run_critic_loop",
    "should_trigger_critic",
]
