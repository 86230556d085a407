"""
TraceContext - per-element tracing through the send pipeline.

The active context is kept in a ContextVar so every log line emitted while a
batch element is in flight carries its trace_id.
"""

import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_current_trace: ContextVar[Optional["TraceContext"]] = ContextVar("current_trace", default=None)


@dataclass
class TraceEvent:
    """A single pipeline stage reached by a batch element."""
    stage: str                    # preflight, blockhash, simulated, signed, sent, confirmed
    timestamp_mono: float
    timestamp_wall: str
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def now(cls, stage: str, **data) -> "TraceEvent":
        return cls(
            stage=stage,
            timestamp_mono=time.monotonic(),
            timestamp_wall=datetime.now(timezone.utc).isoformat(),
            data=data,
        )


@dataclass
class TraceContext:
    """Trace of one batch element."""
    trace_id: str
    batch_id: str
    index: int
    started: float = field(default_factory=time.monotonic)
    events: list = field(default_factory=list)

    signature: Optional[str] = None
    outcome: Optional[str] = None  # 'success' | 'fail'
    fail_reason: Optional[str] = None

    @classmethod
    def start(cls, batch_id: str, index: int) -> "TraceContext":
        """Create a trace for element `index` of `batch_id` and make it current."""
        ctx = cls(trace_id=f"{batch_id}:{index}", batch_id=batch_id, index=index)
        _current_trace.set(ctx)
        return ctx

    def mark(self, stage: str, **data) -> None:
        self.events.append(TraceEvent.now(stage, **data))
        if stage == "sent" and "signature" in data:
            self.signature = str(data["signature"])

    def finish(self, success: bool, fail_reason: Optional[str] = None) -> None:
        """Record the outcome and clear the current context."""
        self.outcome = "success" if success else "fail"
        self.fail_reason = fail_reason
        _current_trace.set(None)

    def stage_latencies_ms(self) -> Dict[str, float]:
        """Milliseconds from trace start to each recorded stage."""
        return {
            e.stage: round((e.timestamp_mono - self.started) * 1000, 1)
            for e in self.events
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "batch_id": self.batch_id,
            "index": self.index,
            "signature": self.signature,
            "outcome": self.outcome,
            "fail_reason": self.fail_reason,
            "latency_ms": self.stage_latencies_ms(),
            "events": [
                {"stage": e.stage, "timestamp": e.timestamp_wall, "data": e.data}
                for e in self.events
            ],
        }


def new_batch_id() -> str:
    return str(uuid.uuid4())[:12]


def get_current_trace() -> Optional[TraceContext]:
    return _current_trace.get()


def get_trace_id() -> Optional[str]:
    """Current trace_id (used by the log filter)."""
    ctx = _current_trace.get()
    return ctx.trace_id if ctx else None
