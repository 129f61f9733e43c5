"""
TraceEmitter: fan-out of run trace events to registered listeners (the
Socket.IO bridge, loggers, tests).

Events are replayed after `execute()` returns.  They describe a finished run;
nothing in the interpreter waits on a listener.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ...core.Executor import ExecutionResult
from .trace_types import TraceEvent

logger = logging.getLogger(__name__)

TraceListener = Callable[[TraceEvent], None]


class TraceEmitter:
    def __init__(self) -> None:
        self._listeners: List[TraceListener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_trace(self, callback: TraceListener) -> None:
        """Register a callback that receives every emitted trace event."""
        self._listeners.append(callback)

    def off_trace(self, callback: TraceListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, payload: Dict[str, Any]) -> None:
        """Stamp the payload with a millisecond timestamp and broadcast it."""
        if "ts" not in payload:
            payload["ts"] = _now_ms()
        for cb in list(self._listeners):
            try:
                cb(payload)
            except Exception:
                logger.exception("Trace listener failed on %s", payload.get("type"))

    def replay(self,
               result: ExecutionResult,
               visits: Sequence[Tuple[str, str]],
               start_node_id: Optional[str] = None) -> None:
        """Broadcast a finished run as EXEC_START, NODE_VISITED*, OUTPUT*, EXEC_DONE|EXEC_ERROR."""
        self.fire({"type": "EXEC_START", "startNodeId": start_node_id or ""})
        for step, (node_id, label) in enumerate(visits, start=1):
            self.fire({"type": "NODE_VISITED", "nodeId": node_id, "label": label, "step": step})
        for line in result.output:
            self.fire({"type": "OUTPUT", "line": line})
        if result.errors:
            self.fire({"type": "EXEC_ERROR", "errors": list(result.errors)})
        else:
            self.fire({"type": "EXEC_DONE", "outputLines": len(result.output)})


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

global_tracer = TraceEmitter()


def _now_ms() -> int:
    return int(time.time() * 1000)
