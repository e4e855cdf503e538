r"""Snapshots of server-side operations and their status classification.

The server is authoritative for operation statuses and may introduce new
transitional values at any time, so only the statuses known to be
terminal are treated as such. Any other value, including an empty or
unknown one, is pending.
"""

from __future__ import annotations

__all__ = [
    "FAILURE_STATUSES",
    "SUCCESS_STATUSES",
    "Operation",
    "StatusClass",
    "classify_operation_status",
]

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

SUCCESS_STATUSES = frozenset({"SUCCESS", "FINISHED", "DONE", "COMPLETED"})
FAILURE_STATUSES = frozenset({"FAILED", "ERROR", "CANCELLED", "CANCELED"})

_FRACTION = re.compile(r"\.(\d+)")


class StatusClass(str, enum.Enum):
    r"""Partition of operation statuses relevant to waiting."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


def classify_operation_status(status: str | None) -> StatusClass:
    """Classify an operation status.

    Matching is case-insensitive and ignores surrounding whitespace.

    Args:
        status: The status reported by the server.

    Returns:
        ``SUCCESS`` or ``FAILURE`` for known terminal statuses,
        ``PENDING`` for anything else.

    Example:
        ```pycon
        >>> from arescore.operation import classify_operation_status
        >>> classify_operation_status("FINISHED")
        <StatusClass.SUCCESS: 'success'>
        >>> classify_operation_status("failed")
        <StatusClass.FAILURE: 'failure'>
        >>> classify_operation_status("WARMING_UP")
        <StatusClass.PENDING: 'pending'>

        ```
    """
    normalized = (status or "").strip().upper()
    if normalized in SUCCESS_STATUSES:
        return StatusClass.SUCCESS
    if normalized in FAILURE_STATUSES:
        return StatusClass.FAILURE
    return StatusClass.PENDING


@dataclass(frozen=True)
class Operation:
    """Snapshot of a server-side operation.

    Args:
        id: The operation identifier.
        status: The raw status string reported by the server.
        action_name: The kind of action the operation performs.
        created_at: When the operation was created.
        started_at: When the operation started, if it did.
        finished_at: When the operation finished, if it did.
        last_update: When the server last updated the operation.
        raw: The decoded payload the snapshot was parsed from.

    Example:
        ```pycon
        >>> from arescore.operation import Operation
        >>> op = Operation.from_payload({"id": "p-1", "status": "RUNNING"})
        >>> op.is_terminal
        False

        ```
    """

    id: str
    status: str
    action_name: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    last_update: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Any) -> Operation:
        """Parse a snapshot from a decoded status payload.

        Args:
            payload: The decoded JSON object.

        Returns:
            The parsed snapshot.

        Raises:
            ValueError: If the payload is not an object, or a timestamp
                is not a valid ISO 8601 value.
        """
        if not isinstance(payload, dict):
            msg = f"operation payload must be a JSON object, got {type(payload).__name__}"
            raise ValueError(msg)
        return cls(
            id=str(payload.get("id") or ""),
            status=str(payload.get("status") or ""),
            action_name=payload.get("actionName"),
            created_at=_parse_timestamp(payload.get("created")),
            started_at=_parse_timestamp(payload.get("started")),
            finished_at=_parse_timestamp(payload.get("finished")),
            last_update=_parse_timestamp(payload.get("lastUpdate")),
            raw=payload,
        )

    @property
    def status_class(self) -> StatusClass:
        return classify_operation_status(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status_class is not StatusClass.PENDING

    @property
    def succeeded(self) -> bool:
        return self.status_class is StatusClass.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status_class is StatusClass.FAILURE


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat accepts at most microseconds
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        msg = f"invalid timestamp: {value!r}"
        raise ValueError(msg) from exc
