"""
Data models for prediction jobs on the remote model API.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class PredictionStatus(Enum):
    """Lifecycle of a prediction job."""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    TIMED_OUT = "timed_out"  # imposed locally, never reported by the server

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @classmethod
    def parse(cls, value: Any) -> "PredictionStatus":
        """Map a server status string onto the enum.

        A missing status means the provider answered synchronously. Unknown
        strings are treated as still running.
        """
        if value is None:
            return cls.SUCCEEDED
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.PROCESSING


_TERMINAL = {
    PredictionStatus.SUCCEEDED,
    PredictionStatus.FAILED,
    PredictionStatus.CANCELED,
    PredictionStatus.TIMED_OUT,
}


@dataclass(frozen=True)
class Absent:
    """No output was produced."""


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class TextList:
    items: Tuple[str, ...]


@dataclass(frozen=True)
class Structured:
    value: Any


PredictionOutput = Union[Absent, Text, TextList, Structured]


def parse_output(raw: Any) -> PredictionOutput:
    """Classify the heterogeneous ``output`` field of a prediction payload.

    Empty strings and empty lists count as no output.
    """
    if raw is None or raw == "" or raw == []:
        return Absent()
    if isinstance(raw, str):
        return Text(raw)
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return TextList(tuple(raw))
    return Structured(raw)


@dataclass(frozen=True)
class PredictionJob:
    """One remote computation, as last reported by the API."""
    id: Optional[str]
    status: PredictionStatus
    output: PredictionOutput = field(default_factory=Absent)
    error: Optional[Any] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PredictionJob":
        return cls(
            id=payload.get("id"),
            status=PredictionStatus.parse(payload.get("status")),
            output=parse_output(payload.get("output")),
            error=payload.get("error"),
            raw=dict(payload),
        )

    def timed_out(self) -> "PredictionJob":
        """Copy of this job marked as abandoned by the poller."""
        return replace(self, status=PredictionStatus.TIMED_OUT)
