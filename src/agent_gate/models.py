"""Core data models for the agent gate."""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

TaskType = Literal["web_only", "web_with_file", "chat_only"]


class ElementDescriptor(BaseModel):
    """One interactive element in a semantic skeleton. Unset fields are dropped, not nulled."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tag: str
    text: Optional[str] = None
    value: Optional[str] = None
    disabled: Optional[bool] = None  # only ever True when set
    aria_expanded: Optional[str] = Field(default=None, alias="ariaExpanded")
    href: Optional[str] = None
    role: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Element key -> descriptor, or alert key -> alert text.
SemanticSkeleton = Dict[str, Union[ElementDescriptor, str]]


class TaskTypeClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_type: TaskType
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    requires_browser: bool
    has_file_context: bool


class CriticInput(BaseModel):
    goal: str
    action: str
    thought: str = ""
    plan_step: Optional[str] = None
    element_description: Optional[str] = None
    previous_failure: Optional[str] = None
    confidence: Optional[float] = None


class CriticContext(BaseModel):
    """Identifiers used for cost attribution and trace linkage."""

    tenant_id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    task_id: Optional[str] = None
    trace_id: Optional[str] = None


class CriticApproval(BaseModel):
    model_config = ConfigDict(frozen=True)

    approved: Literal[True] = True
    confidence: float = Field(ge=0.0, le=1.0)
    duration_ms: int = 0
    # Diagnostics only (fail-open, skipped evaluation); never a rejection reason.
    reason: Optional[str] = None


class CriticRejection(BaseModel):
    model_config = ConfigDict(frozen=True)

    approved: Literal[False] = False
    confidence: float = Field(ge=0.0, le=1.0)
    duration_ms: int = 0
    reason: Optional[str] = None
    suggestion: Optional[str] = None


CriticResult = Union[CriticApproval, CriticRejection]


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_cost_usd: float
    output_cost_usd: float
    cached_cost_usd: float = 0.0
    total_cost_usd: float
    total_cost_cents: int


class UsageRecord(BaseModel):
    """Payload handed to the cost ledger after a critic completion."""

    tenant_id: str
    user_id: str
    session_id: Optional[str] = None
    task_id: Optional[str] = None
    trace_id: Optional[str] = None
    provider: str
    model: str
    action_type: str = "CRITIC"
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    cost: Optional[CostBreakdown] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BeforeState(BaseModel):
    """Page state captured before an action was dispatched."""

    url: str
    dom_hash: str
    active_element: Optional[str] = None
    semantic_skeleton: Optional[Dict[str, Any]] = None


class ClientObservations(BaseModel):
    """Changes witnessed by the browser side while the action ran."""

    did_network_occur: Optional[bool] = None
    did_dom_mutate: Optional[bool] = None
    did_url_change: Optional[bool] = None


class ObservationList(BaseModel):
    observations: List[str] = Field(default_factory=list)
    meaningful_content_change: bool = False
