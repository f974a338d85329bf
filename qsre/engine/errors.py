"""Exception types shared by the rule store, engine and record stores."""


class RuleValidationError(ValueError):
    """Rule definition rejected at create/update time."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RuleNotFound(LookupError):
    """One or more requested rule ids do not exist."""

    def __init__(self, rule_ids: list[str]) -> None:
        super().__init__(f"Schedule rule(s) not found: {', '.join(rule_ids)}")
        self.rule_ids = rule_ids


class RecordStoreError(RuntimeError):
    """Base class for failures raised by a record store."""


class RecordUpdateError(RecordStoreError):
    """A single contributor project mutation was rejected."""

    def __init__(self, record_id: str, message: str) -> None:
        super().__init__(message)
        self.record_id = record_id
        self.message = message


class RecordStoreUnavailable(RecordStoreError):
    """The record store could not be reached at all."""


class MutationsInterrupted(RecordStoreUnavailable):
    """The record store went away while a plan was being applied."""

    def __init__(self, message: str, outcomes: list) -> None:
        super().__init__(message)
        self.outcomes = outcomes


class EvaluationSkip(Exception):
    """A record cannot be evaluated against a trigger (missing field, bad coercion)."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
