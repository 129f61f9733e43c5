import json
import os

from blockflow import FlowInterpreter
from blockflow.cli import main

FLOWS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../flows"))
HELLO = os.path.join(FLOWS_DIR, "hello_world.json")
COUNT = os.path.join(FLOWS_DIR, "count_to_three.json")


class TestCli:

    def test_validate(self, capsys):
        assert main(["validate", HELLO]) == 0
        assert "flow is valid" in capsys.readouterr().out

    def test_validate_json_reports_errors(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"nodes": [{"id": "s", "type": "start"}], "edges": []}), encoding="utf-8")
        assert main(["validate", str(path), "--json"]) == 1
        body = json.loads(capsys.readouterr().out)
        assert body["valid"] is False
        assert "❌ Missing end node" in body["errors"]

    def test_run(self, capsys):
        assert main(["run", COUNT]) == 0
        out = capsys.readouterr().out.splitlines()
        assert [line for line in out if line.startswith("🖨️")] == ["🖨️ 1", "🖨️ 2", "🖨️ 3"]

    def test_run_json(self, capsys):
        assert main(["run", HELLO, "--json"]) == 0
        body = json.loads(capsys.readouterr().out)
        assert body["output"][1] == "🖨️ Hello, World!"

    def test_generate_print(self, capsys):
        assert main(["generate", COUNT, "--mode", "python", "--print"]) == 0
        assert "while (n <= 3) and while_count < 100:" in capsys.readouterr().out

    def test_generate_to_directory(self, tmp_path, capsys):
        assert main(["generate", HELLO, "--mode", "js", "--out", str(tmp_path)]) == 0
        written = tmp_path / "hello_world.js"
        assert written.read_text(encoding="utf-8").startswith("// Generated JavaScript Code")
        assert str(written) in capsys.readouterr().out

    def test_errors(self, tmp_path, capsys):
        assert main(["run", str(tmp_path / "missing.json")]) == 1
        assert "[error] File not found" in capsys.readouterr().err

        bad = tmp_path / "bad.json"
        bad.write_text("{", encoding="utf-8")
        assert main(["run", str(bad)]) == 1
        assert "[error] Schema validation failed" in capsys.readouterr().err

        assert main(["generate", HELLO, "--mode", "cobol", "--print"]) == 1
        assert "[error] Unknown code mode: cobol" in capsys.readouterr().err


class TestFlowInterpreter:

    def test_editor_dicts(self):
        interp = FlowInterpreter(
            [{"id": "s", "type": "start"}, {"id": "e", "type": "end"}],
            [{"source": "s", "target": "e"}],
        )
        assert interp.validate() == []
        assert interp.execute().output == ["🚀 Program started", "🏁 Program ended"]
        assert interp.generate_code("logic") == "Logic Flow:\n🚀 START\n🏁 END"

    def test_from_file(self):
        interp = FlowInterpreter.from_file(COUNT)
        assert interp.execute().variables["n"] == 4
        assert interp.generate_code("js") == interp.generate_code("javascript")
