import itertools
import os
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class RunStatus(str, Enum):
    STARTED = "started"
    SUCCESS = "success"
    FAILED = "failed"


class RunKind(str, Enum):
    PIPELINE = "pipeline"
    AGENT = "agent"


_run_counter = itertools.count(1)


def new_run_id() -> str:
    """
    Unique run identifier: run-<ns clock>-<pid>.<counter>-<random>.

    The counter is process-wide and itertools.count is atomic under the GIL,
    so two dispatches started in the same nanosecond still differ.
    """
    return f"run-{time.time_ns()}-{os.getpid()}.{next(_run_counter)}-{uuid.uuid4().hex[:8]}"


@dataclass
class ExecutionRecord:
    run_id: str
    target: str
    kind: RunKind
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: RunStatus = RunStatus.STARTED
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def start(cls, target: str, kind: RunKind) -> "ExecutionRecord":
        return cls(run_id=new_run_id(), target=target, kind=kind)

    @property
    def is_finished(self) -> bool:
        return self.status != RunStatus.STARTED

    def finalize(self, status: RunStatus, error: Optional[str] = None) -> None:
        """Move to a terminal status. Allowed exactly once."""
        if self.is_finished:
            raise RuntimeError(f"Execution record {self.run_id} already finalized as {self.status.value}")
        if status == RunStatus.STARTED:
            raise ValueError("Terminal status required")
        self.status = status
        self.error = error
        self.finished_at = datetime.now(timezone.utc)
        self.duration_ms = int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "target": self.target,
            "kind": self.kind.value,
            "started_at": self.started_at.isoformat(),
            "status": self.status.value,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionRecord":
        return cls(
            run_id=data["run_id"],
            target=data["target"],
            kind=RunKind(data["kind"]),
            started_at=datetime.fromisoformat(data["started_at"]),
            status=RunStatus(data["status"]),
            finished_at=datetime.fromisoformat(data["finished_at"]) if data.get("finished_at") else None,
            duration_ms=data.get("duration_ms"),
            error=data.get("error"),
        )
