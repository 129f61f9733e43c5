import asyncio

from fastapi.testclient import TestClient

from blockflow.server.main import app
from blockflow.server.state import flow_state
from blockflow.server.trace.trace_emitter import global_tracer


HELLO = {
    "nodes": [
        {"id": "s", "type": "start"},
        {"id": "p", "type": "print", "data": {"value": '"hey"'}},
        {"id": "e", "type": "end"},
    ],
    "edges": [
        {"source": "s", "target": "p", "sourceHandle": "out"},
        {"source": "p", "target": "e", "sourceHandle": "out"},
    ],
}


class TestFlowRoutes:

    def setup_method(self):
        flow_state.reset(seed_demo=True)
        self.client = TestClient(app)
        self.events = []
        global_tracer.on_trace(self.events.append)

    def teardown_method(self):
        global_tracer.off_trace(self.events.append)

    def test_health(self):
        assert self.client.get("/health").json() == {"status": "ok"}

    def test_demo_flow(self):
        data = self.client.get("/api/flow").json()
        assert [n["id"] for n in data["nodes"]] == ["start-1", "print-1", "end-1"]
        assert [e["id"] for e in data["edges"]] == ["estart-1-out-print-1", "eprint-1-out-end-1"]

    def test_run_open_flow(self):
        res = self.client.post("/api/flow/run")
        assert res.status_code == 200
        body = res.json()
        assert body["errors"] == []
        assert body["output"] == ["🚀 Program started", "🖨️ Hello, World!", "🏁 Program ended"]

        types = [e["type"] for e in self.events]
        assert types == ["EXEC_START", "NODE_VISITED", "NODE_VISITED", "NODE_VISITED",
                         "OUTPUT", "OUTPUT", "OUTPUT", "EXEC_DONE"]
        assert self.events[0]["startNodeId"] == "start-1"
        assert self.events[2]["label"] == "Print"
        assert all("ts" in e for e in self.events)

    def test_code_for_open_flow(self):
        body = self.client.get("/api/flow/code", params={"mode": "javascript"}).json()
        assert body["mode"] == "javascript"
        assert 'console.log("Hello, World!");' in body["code"]

    def test_edit_nodes_and_edges(self):
        res = self.client.post("/api/flow/nodes", json={"type": "print", "data": {"value": "1"}})
        assert res.status_code == 201
        assert res.json()["id"] == "print-2"

        # print-1 accepts one inbound edge, so start-1 -> print-1 is replaced
        res = self.client.post("/api/flow/edges", json={"source": "print-2", "target": "print-1"})
        assert res.status_code == 201
        assert res.json()["sourceHandle"] is None

        errors = self.client.get("/api/flow/validate").json()["errors"]
        assert "❌ Start node is not connected to anything" in errors
        assert "❌ Node \"print\" has no incoming connections" in errors

        res = self.client.patch("/api/flow/nodes/print-1", json={"data": {"value": '"Bye"'}})
        assert res.json()["data"]["value"] == '"Bye"'
        assert res.json()["data"]["label"] == "Print"

        assert self.client.delete("/api/flow/nodes/print-1").status_code == 204
        assert self.client.delete("/api/flow/nodes/print-1").status_code == 404
        assert self.client.get("/api/flow").json()["edges"] == []

    def test_missing_things(self):
        assert self.client.patch("/api/flow/nodes/ghost", json={"data": {}}).status_code == 404
        assert self.client.delete("/api/flow/edges/ghost").status_code == 404
        res = self.client.post("/api/flow/edges", json={"source": "start-1", "target": "ghost"})
        assert res.status_code == 404

    def test_import_and_reset(self):
        assert self.client.put("/api/flow", json={"nodes": [{"id": 1}], "edges": []}).status_code == 400

        res = self.client.put("/api/flow", json=HELLO)
        assert res.status_code == 200
        assert self.client.post("/api/flow/run").json()["output"][1] == "🖨️ hey"

        data = self.client.post("/api/flow/reset").json()
        assert data == {"nodes": [], "edges": []}

    def test_block_types(self):
        types = {t["type"]: t["defaults"] for t in self.client.get("/api/block-types").json()}
        assert types["whileLoop"] == {"condition": ""}
        assert types["declareVariable"]["variableType"] == "number"
        assert "teleport" not in types


class TestStatelessRoutes:

    def setup_method(self):
        self.client = TestClient(app)

    def test_execution_runs_off_the_event_loop(self):
        on_loop = []

        def listener(event):
            try:
                asyncio.get_running_loop()
                on_loop.append(True)
            except RuntimeError:
                on_loop.append(False)

        global_tracer.on_trace(listener)
        try:
            assert self.client.post("/api/execute", json=HELLO).status_code == 200
        finally:
            global_tracer.off_trace(listener)
        assert on_loop
        assert not any(on_loop)

    def test_validate(self):
        body = self.client.post("/api/validate", json={"nodes": [], "edges": []}).json()
        assert body == {"valid": False, "errors": ["❌ Missing start node", "❌ Missing end node"]}

    def test_execute(self):
        body = self.client.post("/api/execute", json=HELLO).json()
        assert body["output"] == ["🚀 Program started", "🖨️ hey", "🏁 Program ended"]

    def test_execute_reports_nan_as_text(self):
        doc = {
            "nodes": HELLO["nodes"] + [
                {"id": "x", "type": "arithmeticOperator",
                 "data": {"left": "word", "operator": "*", "right": "2", "resultVar": "r"}},
            ],
            "edges": [
                {"source": "s", "target": "x"},
                {"source": "x", "target": "p"},
                {"source": "p", "target": "e"},
            ],
        }
        body = self.client.post("/api/execute", json=doc).json()
        assert body["variables"]["r"] == "NaN"

    def test_generate(self):
        body = self.client.post("/api/generate", json=dict(HELLO, mode="python")).json()
        assert "print('hey')" in body["code"]
        assert self.client.post("/api/generate", json=dict(HELLO, mode="cobol")).status_code == 400

    def test_schema_error(self):
        res = self.client.post("/api/execute", json={"nodes": [{"id": "a", "type": "start"}],
                                                     "edges": [{"source": "a", "target": "b"}]})
        assert res.status_code == 400
        assert "not found in nodes" in res.json()["detail"]
