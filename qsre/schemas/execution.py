"""Transition plan, execution result and history schemas."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from qsre.schemas.rule import RuleSummary


class TriggeredBy(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic_scheduler"


class SkippedRecord(BaseModel):
    """Record excluded because its trigger could not be evaluated."""

    record_id: str
    reason: str


class TransitionPlan(BaseModel):
    """Records a rule would move, not yet applied."""

    rule_id: str
    records: list[str] = Field(default_factory=list)
    from_status: str
    to_status: str
    evaluated: int = 0
    skipped: list[SkippedRecord] = Field(default_factory=list)


class ExecutionError(BaseModel):
    """Per-record (or per-rule) failure captured during a run."""

    rule_id: str | None = None
    record_id: str | None = None
    error: str


class AppliedUpdate(BaseModel):
    """A successfully applied status change."""

    rule_id: str
    record_id: str
    record_name: str = ""
    from_status: str
    to_status: str


class RuleExecutionSummary(BaseModel):
    """Per-rule counts within one batch."""

    rule_id: str
    rule_name: str
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    history_id: str | None = None


class ExecutionResult(BaseModel):
    """Aggregated outcome of one execute() batch."""

    batch_id: str
    triggered_by: TriggeredBy
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[ExecutionError] = Field(default_factory=list)
    updates: list[AppliedUpdate] = Field(default_factory=list)
    executed_rules: list[RuleExecutionSummary] = Field(default_factory=list)
    duration_ms: int = 0
    cancelled: bool = False


class ConfirmationRequired(BaseModel):
    """Returned instead of running when disabled rules were selected."""

    disabled_rules: list[RuleSummary]


class ExecuteRequest(BaseModel):
    """POST /v1/execute-scheduled-updates request."""

    rule_ids: list[str] = Field(default_factory=list)
    confirm_enable: bool = False


class ExecuteResponse(BaseModel):
    """POST /v1/execute-scheduled-updates response."""

    status: Literal["completed", "confirmation_required"]
    message: str
    results: ExecutionResult | None = None
    disabled_rules: list[RuleSummary] = Field(default_factory=list)


class ExecutionHistoryEntry(BaseModel):
    """One persisted history row (one rule within one batch)."""

    model_config = {"from_attributes": True}

    id: str
    batch_id: str
    rule_id: str | None
    rule_name: str | None
    rule_hash: str | None
    execution_time: datetime
    triggered_by: TriggeredBy
    rules_processed: int
    rules_updated: int
    rules_skipped: int
    duration_ms: int
    errors: list[dict] = Field(default_factory=list)
    updates: list[dict] = Field(default_factory=list)
    cancelled: bool = False


class ExecutionHistoryPage(BaseModel):
    """GET /v1/execution-history response."""

    history: list[ExecutionHistoryEntry]
    total: int
    limit: int
    offset: int
