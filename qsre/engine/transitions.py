"""Queue status values and the allowed transitions between them."""

NONE_STATUS = "--None--"
CALIBRATION_QUEUE = "Calibration Queue"
PRODUCTION_QUEUE = "Production Queue"
TEST_QUEUE = "Test Queue"

QUEUE_STATUSES = (NONE_STATUS, CALIBRATION_QUEUE, PRODUCTION_QUEUE, TEST_QUEUE)

TRANSITION_RULES: dict[str, dict] = {
    NONE_STATUS: {
        "allowed": [CALIBRATION_QUEUE, PRODUCTION_QUEUE, TEST_QUEUE, NONE_STATUS],
        "description": "Can transition to any queue status",
    },
    CALIBRATION_QUEUE: {
        "allowed": [PRODUCTION_QUEUE, TEST_QUEUE, NONE_STATUS],
        "description": "Can transition to Production Queue, Test Queue, or remove (--None--)",
    },
    PRODUCTION_QUEUE: {
        "allowed": [TEST_QUEUE, CALIBRATION_QUEUE, NONE_STATUS],
        "description": "Can transition to Test Queue, Calibration Queue, or remove (--None--)",
    },
    TEST_QUEUE: {
        "allowed": [PRODUCTION_QUEUE, CALIBRATION_QUEUE, NONE_STATUS],
        "description": "Can transition to Production Queue, Calibration Queue, or remove (--None--)",
    },
}


def normalize_status(status: str | None) -> str:
    """Map null/empty record values onto the --None-- status."""
    if status is None:
        return NONE_STATUS
    status = status.strip()
    return status or NONE_STATUS


def to_record_value(status: str) -> str | None:
    """Queue status as stored on a record (--None-- is stored as null)."""
    status = normalize_status(status)
    return None if status == NONE_STATUS else status


def statuses_match(expected: str, actual: str | None) -> bool:
    return normalize_status(expected) == normalize_status(actual)


def get_allowed_transitions(current_status: str | None) -> list[str]:
    rule = TRANSITION_RULES.get(normalize_status(current_status))
    return list(rule["allowed"]) if rule else list(QUEUE_STATUSES)


def is_valid_transition(from_status: str | None, to_status: str | None) -> bool:
    return normalize_status(to_status) in get_allowed_transitions(from_status)
