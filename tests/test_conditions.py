"""Test conditions.py"""

from datetime import datetime, timezone

import pytest

from integration_reconciler.conditions import (
    find_status_condition,
    set_status_condition,
)
from integration_reconciler.models import Condition

EARLIER = datetime(2024, 3, 18, 15, 0, tzinfo=timezone.utc)
NOW = datetime(2024, 3, 18, 16, 0, tzinfo=timezone.utc)

PASSED = Condition(
    type="TestSucceeded",
    status="True",
    reason="Passed",
    message="All Integration Pipeline tests passed",
    last_transition_time=EARLIER,
)
OTHER = Condition(type="Other", status="Unknown", last_transition_time=EARLIER)


class TestSetStatusCondition:
    """Test set_status_condition"""

    def test_add_condition(self) -> None:
        """Test adding a condition of a new type"""
        new = Condition(type="TestSucceeded", status="False", reason="Failed")
        conditions, changed = set_status_condition([OTHER], new, now=NOW)
        assert changed
        assert conditions == [
            OTHER,
            new.model_copy(update={"last_transition_time": NOW}),
        ]

    def test_same_condition_is_noop(self) -> None:
        """Test setting a condition identical to the existing one"""
        same = PASSED.model_copy(update={"last_transition_time": None})
        conditions, changed = set_status_condition([OTHER, PASSED], same, now=NOW)
        assert not changed
        assert conditions == [OTHER, PASSED]

    def test_status_change_moves_transition_time(self) -> None:
        """Test changing the status of a condition"""
        failed = Condition(
            type="TestSucceeded", status="False", reason="Failed", message="failed"
        )
        conditions, changed = set_status_condition([PASSED, OTHER], failed, now=NOW)
        assert changed
        assert conditions[0].status == "False"
        assert conditions[0].reason == "Failed"
        assert conditions[0].last_transition_time == NOW
        assert conditions[1] == OTHER

    def test_message_change_keeps_transition_time(self) -> None:
        """Test changing only the message of a condition"""
        updated = PASSED.model_copy(
            update={"message": "new message", "last_transition_time": None}
        )
        conditions, changed = set_status_condition([PASSED], updated, now=NOW)
        assert changed
        assert conditions[0].message == "new message"
        assert conditions[0].last_transition_time == EARLIER

    def test_input_not_modified(self) -> None:
        """Test the given list is left untouched"""
        original = [PASSED]
        new = Condition(type="Other", status="True")
        set_status_condition(original, new, now=NOW)
        assert original == [PASSED]


@pytest.mark.parametrize(
    ("conditions", "expected"),
    [
        pytest.param([], None, id="no conditions"),
        pytest.param([OTHER], None, id="other type"),
        pytest.param([OTHER, PASSED], PASSED, id="found"),
    ],
)
def test_find_status_condition(
    conditions: list[Condition], expected: Condition
) -> None:
    """Test find_status_condition"""
    assert find_status_condition(conditions, "TestSucceeded") == expected
