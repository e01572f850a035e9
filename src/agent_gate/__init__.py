"""Decision and verification core for an autonomous browsing agent."""

from .critic import CriticEngine, evaluate_action, run_critic_loop, should_trigger_critic
from .diff_engine import get_granular_observation
from .models import (
    CriticApproval,
    CriticContext,
    CriticInput,
    CriticRejection,
    CriticResult,
    ElementDescriptor,
    SemanticSkeleton,
    TaskTypeClassification,
)
from .observation import build_observation_list
from .skeleton import extract_semantic_skeleton
from .task_classifier import classify_task_type

__all__ = [
    "CriticEngine",
    "CriticApproval",
    "CriticContext",
    "CriticInput",
    "CriticRejection",
    "CriticResult",
    "ElementDescriptor",
    "SemanticSkeleton",
    "TaskTypeClassification",
    "build_observation_list",
    "classify_task_type",
    "evaluate_action",
    "extract_semantic_skeleton",
    "get_granular_observation",
    "run_critic_loop",
    "should_trigger_critic",
]
