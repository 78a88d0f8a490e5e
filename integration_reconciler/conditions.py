"""Set-if-changed handling of status conditions"""

from datetime import datetime, timezone
from typing import Optional

from .models import Condition


def set_status_condition(
    conditions: list[Condition],
    new_condition: Condition,
    now: Optional[datetime] = None,
) -> tuple[list[Condition], bool]:
    """
    Set a condition in a list of conditions, keyed by the condition type.
    Setting a condition identical to the existing one (status, reason and message)
    leaves the list untouched, so no write is needed.
    The transition time is only moved when the condition status changes.
    :param conditions: the current conditions
    :param new_condition: the condition to set
    :param now: the transition time to record, defaults to the current time
    :return: the resulting conditions and whether they differ from the input
    """
    if now is None:
        now = datetime.now(timezone.utc).replace(microsecond=0)

    updated = list(conditions)
    for index, existing in enumerate(conditions):
        if existing.type != new_condition.type:
            continue
        if (existing.status, existing.reason, existing.message) == (
            new_condition.status,
            new_condition.reason,
            new_condition.message,
        ):
            return updated, False
        transition_time = (
            existing.last_transition_time
            if existing.status == new_condition.status
            else new_condition.last_transition_time or now
        )
        updated[index] = new_condition.model_copy(
            update={"last_transition_time": transition_time}
        )
        return updated, True

    updated.append(
        new_condition.model_copy(
            update={
                "last_transition_time": new_condition.last_transition_time or now
            }
        )
    )
    return updated, True


def find_status_condition(
    conditions: list[Condition], condition_type: str
) -> Optional[Condition]:
    """Return the condition of the given type, if present"""
    return next(
        (condition for condition in conditions if condition.type == condition_type),
        None,
    )
