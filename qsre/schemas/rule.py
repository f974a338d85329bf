"""Schedule rule schemas."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from qsre.engine.fields import Operator


class RuleType(str, Enum):
    TIME_BASED = "time_based"
    CONDITION_BASED = "condition_based"


class TimeType(str, Enum):
    DAYS = "days"
    DATE = "date"


class FilterMode(str, Enum):
    NONE = "none"
    INCLUDE = "include"
    EXCLUDE = "exclude"


class DimensionFilter(BaseModel):
    """Include/exclude selection for one filter dimension."""

    mode: FilterMode = FilterMode.NONE
    selected: list[str] = Field(default_factory=list)

    @field_validator("selected", mode="after")
    @classmethod
    def dedupe_selected(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class RuleFilters(BaseModel):
    """The three independent filter dimensions of a rule."""

    projects: DimensionFilter = Field(default_factory=DimensionFilter)
    project_objectives: DimensionFilter = Field(default_factory=DimensionFilter)
    contributor_projects: DimensionFilter = Field(default_factory=DimensionFilter)


class Condition(BaseModel):
    """Single field comparison of a condition-based rule."""

    field: str
    operator: Operator
    value: bool | int | float | str


class RuleDefinition(BaseModel):
    """User-editable part of a schedule rule."""

    name: str
    type: RuleType = RuleType.TIME_BASED
    enabled: bool = False
    from_status: str
    to_status: str
    time_type: TimeType | None = None
    days: int | None = None
    specific_date: date | None = None
    specific_time: str | None = None
    condition: Condition | None = None
    filters: RuleFilters = Field(default_factory=RuleFilters)


class Rule(RuleDefinition):
    """Persisted schedule rule with audit metadata."""

    id: str
    created_at: datetime
    created_by: str | None = None
    updated_at: datetime | None = None
    last_executed_at: datetime | None = None
    last_execution_count: int | None = None


class CreateRuleRequest(RuleDefinition):
    """POST /v1/schedule-rules request."""

    created_by: str | None = None


class UpdateRuleRequest(BaseModel):
    """PUT /v1/schedule-rules/{id} - partial update, unset fields are kept."""

    name: str | None = None
    type: RuleType | None = None
    enabled: bool | None = None
    from_status: str | None = None
    to_status: str | None = None
    time_type: TimeType | None = None
    days: int | None = None
    specific_date: date | None = None
    specific_time: str | None = None
    condition: Condition | None = None
    filters: RuleFilters | None = None


class SetEnabledRequest(BaseModel):
    """POST /v1/schedule-rules/{id}/enabled request."""

    enabled: bool


class RuleSummary(BaseModel):
    """Short rule reference used in confirmation prompts and run summaries."""

    id: str
    name: str
    enabled: bool
