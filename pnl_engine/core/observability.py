"""
Observability for P&L Report Generation

Provides request-scoped tracing of a single report generation:
- Trace: complete execution of one report (one entity, one month)
- Span: individual phase within a trace (aggregation, rollup, rendering)
- Totals: raw and rolled-up account totals captured per period/scenario

A Tracer is created per report call and never shared, so concurrent report
generations cannot see each other's state. Callers that only want the
computed numbers can pass a plain observer callback instead of reading the
trace afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Callable, Mapping
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
import hashlib
import json
import logging
import time

logger = logging.getLogger(__name__)

# observer(event_name, payload)
Observer = Callable[[str, Dict[str, Any]], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SpanKind(Enum):
    """Types of spans for categorization."""
    AGGREGATION = "aggregation"
    ROLLUP = "rollup"
    RENDERING = "rendering"
    ASSEMBLY = "assembly"


class SpanStatus(Enum):
    """Outcome status of a span."""
    OK = "ok"
    ERROR = "error"


@dataclass
class Span:
    """Individual operation in a trace."""
    span_id: str
    name: str
    kind: SpanKind
    start_time: datetime
    end_time: Optional[datetime] = None
    status: SpanStatus = SpanStatus.OK
    parent_span_id: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        """Calculate span duration in milliseconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds() * 1000
        return 0

    def add_event(self, name: str, attributes: Dict[str, Any] = None):
        """Add a timestamped event to the span."""
        self.events.append({
            "name": name,
            "timestamp": _now().isoformat(),
            "attributes": attributes or {}
        })

    def set_error(self, error: Exception):
        """Mark span as errored."""
        self.status = SpanStatus.ERROR
        self.error_message = f"{type(error).__name__}: {str(error)}"
        self.add_event("exception", {
            "type": type(error).__name__,
            "message": str(error)
        })

    def to_dict(self) -> Dict[str, Any]:
        """Serialize span for export."""
        return {
            "span_id": self.span_id,
            "name": self.name,
            "kind": self.kind.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "parent_span_id": self.parent_span_id,
            "attributes": self.attributes,
            "events": self.events,
            "error_message": self.error_message,
        }


@dataclass
class ReportTrace:
    """Complete execution trace for one report."""
    trace_id: str
    entity_name: str
    start_time: datetime
    type_label: Optional[str] = None
    end_time: Optional[datetime] = None

    spans: List[Span] = field(default_factory=list)

    # Captured totals keyed by name, e.g. "month_actual" / "month_actual_raw"
    totals: Dict[str, Dict[str, float]] = field(default_factory=dict)

    # Outcome
    status: SpanStatus = SpanStatus.OK
    error_message: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        """Total trace duration in milliseconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds() * 1000
        return 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize trace for export."""
        return {
            "trace_id": self.trace_id,
            "entity_name": self.entity_name,
            "type_label": self.type_label,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "error_message": self.error_message,
            "totals": self.totals,
            "spans": [s.to_dict() for s in self.spans],
        }


class Tracer:
    """
    Request-scoped tracer for one report generation.

    Usage:
        tracer = Tracer(observer=my_callback)

        with tracer.start_trace("District 121", type_label="District") as trace:
            with tracer.start_span("rollup_month_actual", SpanKind.ROLLUP):
                totals = engine.compute(raw)
                tracer.record_totals("month_actual", totals)
    """

    def __init__(self, observer: Optional[Observer] = None, export_dir: Optional[Path] = None):
        self.observer = observer
        self.export_dir = Path(export_dir) if export_dir else None

        self._current_trace: Optional[ReportTrace] = None
        self._span_stack: List[Span] = []
        self._span_counter: int = 0
        self.last_trace: Optional[ReportTrace] = None

    def _generate_trace_id(self, entity_name: str) -> str:
        """Generate unique trace ID."""
        timestamp = int(time.time() * 1000)
        name_hash = hashlib.md5(entity_name.encode()).hexdigest()[:8]
        return f"trace_{timestamp}_{name_hash}"

    def _generate_span_id(self) -> str:
        """Generate unique span ID."""
        self._span_counter += 1
        return f"span_{int(time.time() * 1000)}_{self._span_counter}"

    @contextmanager
    def start_trace(self, entity_name: str, type_label: str = None):
        """Start a new trace for a report."""
        self._current_trace = ReportTrace(
            trace_id=self._generate_trace_id(entity_name or ""),
            entity_name=entity_name,
            type_label=type_label,
            start_time=_now(),
        )
        self._span_stack = []
        self._span_counter = 0

        logger.debug(f"Started trace {self._current_trace.trace_id} for {entity_name!r}")

        try:
            yield self._current_trace
            self._current_trace.status = SpanStatus.OK
        except Exception as e:
            self._current_trace.status = SpanStatus.ERROR
            self._current_trace.error_message = f"{type(e).__name__}: {str(e)}"
            raise
        finally:
            self._current_trace.end_time = _now()
            self.last_trace = self._current_trace
            if self.export_dir:
                self._export_trace(self._current_trace)
            logger.debug(
                f"Completed trace {self._current_trace.trace_id} "
                f"in {self._current_trace.duration_ms:.0f}ms"
            )
            self._current_trace = None

    @contextmanager
    def start_span(
        self,
        name: str,
        kind: SpanKind,
        attributes: Dict[str, Any] = None,
    ):
        """Start a new span within the current trace."""
        if not self._current_trace:
            # No active trace
            yield None
            return

        span = Span(
            span_id=self._generate_span_id(),
            name=name,
            kind=kind,
            start_time=_now(),
            parent_span_id=self._span_stack[-1].span_id if self._span_stack else None,
            attributes=attributes or {},
        )

        self._span_stack.append(span)
        self._current_trace.spans.append(span)

        try:
            yield span
            span.status = SpanStatus.OK
        except Exception as e:
            span.set_error(e)
            raise
        finally:
            span.end_time = _now()
            self._span_stack.pop()

            logger.debug(
                f"Span {name} completed in {span.duration_ms:.0f}ms"
                + (f" (error: {span.error_message})" if span.error_message else "")
            )

    def record_totals(self, name: str, totals: Mapping[str, float]):
        """Capture a totals mapping on the trace and hand it to the observer."""
        snapshot = dict(totals)
        if self._current_trace:
            self._current_trace.totals[name] = snapshot
        self.emit("totals", {"name": name, "totals": snapshot})

    def emit(self, event: str, payload: Dict[str, Any]):
        """Notify the observer and attach the event to the current span."""
        if self._span_stack:
            self._span_stack[-1].add_event(event, {k: v for k, v in payload.items() if k != "totals"})
        if self.observer:
            self.observer(event, payload)

    @property
    def current_trace(self) -> Optional[ReportTrace]:
        return self._current_trace

    @property
    def current_span(self) -> Optional[Span]:
        return self._span_stack[-1] if self._span_stack else None

    def _export_trace(self, trace: ReportTrace):
        """Export trace to JSON file."""
        filepath = self.export_dir / f"{trace.trace_id}.json"

        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w') as f:
                json.dump(trace.to_dict(), f, indent=2, default=str)
            logger.debug(f"Exported trace to {filepath}")
        except OSError as e:
            logger.error(f"Failed to export trace: {e}")
