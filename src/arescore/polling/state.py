r"""States and results of waiting for an operation."""

from __future__ import annotations

__all__ = ["PollResult", "PollState"]

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arescore.operation import Operation


class PollState(str, enum.Enum):
    """State of a wait for an operation.

    A wait is ``UNCHECKED`` while no status check has succeeded, moves
    to ``WAITING`` once a check observed a non-terminal status, and ends
    in one of the three terminal states.
    """

    UNCHECKED = "unchecked"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PollResult:
    """Successful outcome of a wait.

    Attributes:
        operation: The terminal snapshot of the operation.
        state: Always ``PollState.SUCCEEDED``.
        after_timeout: ``True`` if success was only observed by the final
            check made after the deadline elapsed.
        checks: Number of status checks made, the immediate one included.
        waits: Number of poll intervals waited.
    """

    operation: Operation
    state: PollState
    after_timeout: bool = False
    checks: int = 1
    waits: int = 0
