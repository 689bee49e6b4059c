import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from smartcafe.app.domain.order_status import (  # noqa: E402
    ACTION_CANCEL,
    ACTION_CHANGE_STATUS,
    ACTION_DELETE,
    PROGRESSION,
    OrderStatus,
    available_actions,
    can_transition,
    is_terminal,
    parse_status,
)


def test_progression_order():
    assert [s.value for s in PROGRESSION][:5] == [
        "Pending",
        "Preparing",
        "Ready",
        "Served",
        "Completed",
    ]


@pytest.mark.parametrize("value", ["Completed", "completed", "CANCELLED", " Cancelled "])
def test_terminal_is_case_insensitive(value):
    assert is_terminal(value)


@pytest.mark.parametrize("value", ["Pending", "served", "", "Unknown", None])
def test_non_terminal_statuses(value):
    assert not is_terminal(value)


def test_parse_status():
    assert parse_status("ready") is OrderStatus.READY
    assert parse_status(OrderStatus.SERVED) is OrderStatus.SERVED
    assert parse_status("Lost") is None


def test_backward_and_skip_moves_are_allowed():
    assert can_transition("Served", "Pending")
    assert can_transition("Pending", "Completed")
    assert can_transition("Preparing", "Cancelled")


def test_terminal_orders_cannot_move():
    for src in ("Completed", "Cancelled"):
        for dst in OrderStatus:
            assert not can_transition(src, dst)


def test_unknown_target_is_rejected():
    assert not can_transition("Pending", "Lost")


def test_available_actions():
    assert available_actions("Pending") == {ACTION_CHANGE_STATUS, ACTION_CANCEL}
    assert available_actions("completed") == {ACTION_DELETE}
    assert available_actions("Cancelled") == {ACTION_DELETE}
