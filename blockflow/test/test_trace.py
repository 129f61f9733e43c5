import socketio
from fastapi import FastAPI

from blockflow.core.Executor import ExecutionResult
from blockflow.server.config import Settings
from blockflow.server.trace.socket_server import create_socket_app
from blockflow.server.trace.trace_emitter import TraceEmitter, global_tracer


class TestTraceEmitter:

    def setup_method(self):
        self.tracer = TraceEmitter()
        self.events = []
        self.tracer.on_trace(self.events.append)

    def test_fire_stamps_and_survives_failing_listener(self):
        def broken(event):
            raise RuntimeError("listener down")

        self.tracer.on_trace(broken)
        self.tracer.fire({"type": "OUTPUT", "line": "hi"})
        assert self.events[0]["line"] == "hi"
        assert isinstance(self.events[0]["ts"], int)

    def test_off_trace(self):
        self.tracer.off_trace(self.events.append)
        self.tracer.fire({"type": "OUTPUT", "line": "hi"})
        assert self.events == []

    def test_replay_of_failed_run(self):
        result = ExecutionResult(output=["🚀 Program started"], errors=["❌ Infinite loop detected at node a"])
        self.tracer.replay(result, [("s", "Start"), ("a", "a")], "s")
        assert [e["type"] for e in self.events] == [
            "EXEC_START", "NODE_VISITED", "NODE_VISITED", "OUTPUT", "EXEC_ERROR",
        ]
        assert [e["step"] for e in self.events[1:3]] == [1, 2]
        assert self.events[-1]["errors"] == ["❌ Infinite loop detected at node a"]


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.port == 3001
        assert settings.cors_origins == ["*"]
        assert settings.reload is False

    def test_environment(self):
        settings = Settings.from_env({
            "BLOCKFLOW_PORT": "8080",
            "BLOCKFLOW_LOG_LEVEL": "debug",
            "BLOCKFLOW_CORS_ORIGINS": "http://a.test, http://b.test",
            "BLOCKFLOW_RELOAD": "yes",
        })
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.cors_origins == ["http://a.test", "http://b.test"]
        assert settings.reload is True


class TestSocketServer:

    def test_wraps_fastapi_app(self):
        app = create_socket_app(FastAPI(), ["http://a.test"])
        assert isinstance(app, socketio.ASGIApp)
        # no running loop: broadcasting is skipped
        global_tracer.fire({"type": "OUTPUT", "line": "hi"})
