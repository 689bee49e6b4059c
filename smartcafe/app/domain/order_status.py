"""Order status enumeration and allowed transitions."""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    """Enumerate the lifecycle states for an order."""

    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    SERVED = "Served"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Typical progression; transitions are not forced to follow it.
PROGRESSION: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.COMPLETED,
)

TERMINAL: frozenset[OrderStatus] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

ACTION_CHANGE_STATUS = "change_status"
ACTION_CANCEL = "cancel"
ACTION_DELETE = "delete"

_BY_LOWER = {status.value.lower(): status for status in OrderStatus}


def parse_status(value: object) -> OrderStatus | None:
    """Return the :class:`OrderStatus` matching ``value`` ignoring case.

    Unknown or empty values yield ``None``.
    """

    if isinstance(value, OrderStatus):
        return value
    if value is None:
        return None
    return _BY_LOWER.get(str(value).strip().lower())


def is_terminal(status: object) -> bool:
    """Return ``True`` for ``Completed`` and ``Cancelled`` in any case."""

    return parse_status(status) in TERMINAL


def can_transition(src: object, dst: object) -> bool:
    """Return ``True`` if an order can move from ``src`` to ``dst``.

    Any non-terminal state may move to any state of the enumeration,
    including backwards or skipping ahead. Terminal states never move.
    """

    if is_terminal(src):
        return False
    return parse_status(dst) is not None


def available_actions(status: object) -> frozenset[str]:
    """Actions offered for an order in ``status``.

    Terminal orders may only be deleted; every other order may have its
    status changed or be cancelled but never deleted.
    """

    if is_terminal(status):
        return frozenset({ACTION_DELETE})
    return frozenset({ACTION_CHANGE_STATUS, ACTION_CANCEL})
