"""Token pricing and the cost ledger seam used by the critic.

All prices are USD per 1M tokens. Update the table when providers change rates.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from pydantic import BaseModel

from .models import CostBreakdown, UsageRecord

logger = logging.getLogger(__name__)


class ModelPricing(BaseModel):
    input_per_1m: float
    output_per_1m: float
    cached_input_per_1m: Optional[float] = None


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0


def _pricing(input_per_1m: float, output_per_1m: float) -> ModelPricing:
    return ModelPricing(input_per_1m=input_per_1m, output_per_1m=output_per_1m)


MODEL_PRICING: Dict[str, Dict[str, ModelPricing]] = {
    "openai": {
        "gpt-4-turbo-preview": _pricing(10.0, 30.0),
        "gpt-4-turbo": _pricing(10.0, 30.0),
        "gpt-4-1106-preview": _pricing(10.0, 30.0),
        "gpt-4": _pricing(30.0, 60.0),
        "gpt-4-32k": _pricing(60.0, 120.0),
        "gpt-4o": _pricing(5.0, 15.0),
        "gpt-4o-mini": _pricing(0.15, 0.6),
        "gpt-3.5-turbo": _pricing(0.5, 1.5),
        "gpt-3.5-turbo-16k": _pricing(3.0, 4.0),
        "o1-preview": _pricing(15.0, 60.0),
        "o1-mini": _pricing(3.0, 12.0),
    },
    "anthropic": {
        "claude-3-5-sonnet-20241022": _pricing(3.0, 15.0),
        "claude-3-5-haiku-20241022": _pricing(0.8, 4.0),
        "claude-3-opus-20240229": _pricing(15.0, 75.0),
        "claude-3-sonnet-20240229": _pricing(3.0, 15.0),
        "claude-3-haiku-20240307": _pricing(0.25, 1.25),
        "claude-3-opus": _pricing(15.0, 75.0),
        "claude-3-sonnet": _pricing(3.0, 15.0),
        "claude-3-haiku": _pricing(0.25, 1.25),
    },
    "google": {
        "gemini-1.5-pro": _pricing(1.25, 5.0),
        "gemini-1.5-flash": _pricing(0.075, 0.3),
        "gemini-1.0-pro": _pricing(0.5, 1.5),
    },
}


def get_model_pricing(provider: str, model: str) -> Optional[ModelPricing]:
    """Exact model match first, then the longest key that is a prefix match in either direction.

    Longest wins so dated snapshots like ``gpt-4o-2024-08-06`` price as ``gpt-4o``, not ``gpt-4``.
    """
    provider_pricing = MODEL_PRICING.get(provider)
    if not provider_pricing or not model:
        return None
    if model in provider_pricing:
        return provider_pricing[model]
    candidates = [
        model_key
        for model_key in provider_pricing
        if model.startswith(model_key) or model_key.startswith(model)
    ]
    if not candidates:
        return None
    return provider_pricing[max(candidates, key=len)]


def calculate_token_cost(provider: str, model: str, usage: TokenUsage) -> Optional[CostBreakdown]:
    pricing = get_model_pricing(provider, model)
    if pricing is None:
        logger.warning("No pricing found for %s/%s", provider, model)
        return None
    input_cost = usage.input_tokens / 1_000_000 * pricing.input_per_1m
    output_cost = usage.output_tokens / 1_000_000 * pricing.output_per_1m
    cached_cost = 0.0
    if pricing.cached_input_per_1m and usage.cached_tokens:
        cached_cost = usage.cached_tokens / 1_000_000 * pricing.cached_input_per_1m
    total = input_cost + output_cost + cached_cost
    return CostBreakdown(
        input_cost_usd=input_cost,
        output_cost_usd=output_cost,
        cached_cost_usd=cached_cost,
        total_cost_usd=total,
        total_cost_cents=round(total * 100),
    )


def get_supported_providers() -> List[str]:
    return list(MODEL_PRICING)


def get_supported_models(provider: str) -> List[str]:
    return list(MODEL_PRICING.get(provider, {}))


class UsageLedger(Protocol):
    """Persists LLM usage for billing. Implemented by the hosting platform."""

    async def record_usage(self, record: UsageRecord) -> None: ...


class LoggingUsageLedger:
    """Ledger used when the host does not supply one: usage goes to the log."""

    async def record_usage(self, record: UsageRecord) -> None:
        cents = record.cost.total_cost_cents if record.cost else None
        logger.info(
            "Usage %s tenant=%s user=%s model=%s in=%s out=%s cents=%s",
            record.action_type,
            record.tenant_id,
            record.user_id,
            record.model,
            record.input_tokens,
            record.output_tokens,
            cents,
        )


__all__ = [
    "MODEL_PRICING",
    "ModelPricing",
    "TokenUsage",
    "get_model_pricing",
    "calculate_token_cost",
    "get_supported_providers",
    "get_supported_models",
    "UsageLedger",
    "LoggingUsageLedger",
]
