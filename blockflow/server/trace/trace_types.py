"""
Trace event shapes broadcast to the editor after a run.
All events are plain dicts so they can be emitted over Socket.IO without Pydantic overhead.
"""
from typing import List, Literal, TypedDict, Union


class ExecStartEvent(TypedDict):
    type: Literal["EXEC_START"]
    startNodeId: str
    ts: int


class NodeVisitedEvent(TypedDict):
    type: Literal["NODE_VISITED"]
    nodeId: str
    label: str
    step: int
    ts: int


class OutputEvent(TypedDict):
    type: Literal["OUTPUT"]
    line: str
    ts: int


class ExecDoneEvent(TypedDict):
    type: Literal["EXEC_DONE"]
    outputLines: int
    ts: int


class ExecErrorEvent(TypedDict):
    type: Literal["EXEC_ERROR"]
    errors: List[str]
    ts: int


TraceEvent = Union[
    ExecStartEvent,
    NodeVisitedEvent,
    OutputEvent,
    ExecDoneEvent,
    ExecErrorEvent,
]
