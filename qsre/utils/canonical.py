"""Canonical JSON and rule fingerprinting."""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from qsre.schemas.rule import RuleDefinition

# Fields that change without changing what a rule does
_VOLATILE_FIELDS = {
    "enabled",
    "created_at",
    "created_by",
    "updated_at",
    "last_executed_at",
    "last_execution_count",
}


def _canonical_value(obj: Any) -> Any:
    """Convert value for canonical representation."""
    if obj is None or isinstance(obj, (bool, str)):
        return obj
    if isinstance(obj, Enum):
        return _canonical_value(obj.value)
    if isinstance(obj, (int, float, Decimal)):
        return float(obj) if isinstance(obj, (float, Decimal)) else int(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): _canonical_value(v) for k, v in sorted(obj.items())}
    if isinstance(obj, (list, tuple)):
        return [_canonical_value(v) for v in obj]
    return str(obj)


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON string (sorted keys, consistent formatting)."""
    return json.dumps(_canonical_value(obj), sort_keys=True, separators=(",", ":"))


def rule_hash(rule: RuleDefinition) -> str:
    """SHA256 of the behavioural part of a rule definition."""
    payload = rule.model_dump(exclude=_VOLATILE_FIELDS)
    return hashlib.sha256(canonical_json(payload).encode()).hexdigest()
