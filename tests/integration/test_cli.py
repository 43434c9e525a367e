"""Tests for the batch extraction CLI and the service submit CLI."""
import json

import httpx
import pytest
from click.testing import CliRunner

from dnav.extraction import cli as batch_cli
from dnav.service import cli as submit_cli

TESLA = "Tesla will begin volume production of the new platform in Q2 2026."
TESLA_TITLE = "Begin volume production of the new platform (Q2 2026)"


@pytest.fixture(autouse=True)
def no_credentials(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


class TestBatchCli:
    def test_paged_text_file(self, tmp_path):
        source = tmp_path / "deck.txt"
        source.write_text(
            f"HIGHLIGHTS\n{TESLA}\n\f\f"
            "OUTLOOK\nWe will expand Megafactory capacity in 2026.\n",
            encoding="utf-8",
        )
        out = tmp_path / "out"
        log_file = tmp_path / "run.log"

        assert batch_cli.main(["--input", str(source), "--output", str(out), "--log-file", str(log_file)]) == 0

        data = json.loads((out / "deck.decisions.json").read_text(encoding="utf-8"))
        assert data["doc"] == {"name": "deck.txt", "pageCount": 3}
        pages = {c["evidence"]["page"] for c in data["candidates"]}
        assert pages == {1, 3}
        assert "files_processed" in log_file.read_text()

    def test_directory_of_requests(self, tmp_path, request_body):
        inputs = tmp_path / "in"
        inputs.mkdir()
        (inputs / "tsla.json").write_text(json.dumps(request_body), encoding="utf-8")
        (inputs / "old.decisions.json").write_text("{}", encoding="utf-8")
        out = tmp_path / "out"

        assert batch_cli.main(["--input", str(inputs), "--output", str(out)]) == 0
        assert sorted(p.name for p in out.iterdir()) == ["tsla.decisions.json"]
        data = json.loads((out / "tsla.decisions.json").read_text(encoding="utf-8"))
        assert [c["title"] for c in data["candidates"]] == [TESLA_TITLE]

    def test_bad_file_reported(self, tmp_path, request_body):
        inputs = tmp_path / "in"
        inputs.mkdir()
        (inputs / "good.json").write_text(json.dumps(request_body), encoding="utf-8")
        (inputs / "broken.json").write_text("{not json", encoding="utf-8")
        out = tmp_path / "out"

        assert batch_cli.main(["--input", str(inputs), "--output", str(out)]) == 1
        assert (out / "good.decisions.json").exists()
        assert not (out / "broken.decisions.json").exists()

    def test_undecodable_text_file_reported(self, tmp_path, request_body):
        inputs = tmp_path / "in"
        inputs.mkdir()
        (inputs / "good.json").write_text(json.dumps(request_body), encoding="utf-8")
        (inputs / "latin.txt").write_bytes(b"\xff\xfe We will open a store in Ohio.")
        out = tmp_path / "out"

        assert batch_cli.main(["--input", str(inputs), "--output", str(out)]) == 1
        assert (out / "good.decisions.json").exists()
        assert not (out / "latin.decisions.json").exists()

    def test_missing_input(self, tmp_path):
        assert batch_cli.main(["--input", str(tmp_path / "nope"), "--output", str(tmp_path / "out")]) == 1

    def test_extract_mode_without_credentials_warns(self, tmp_path, request_body, capsys):
        source = tmp_path / "tsla.json"
        source.write_text(json.dumps(request_body), encoding="utf-8")
        assert batch_cli.main(["--input", str(source), "--output", str(tmp_path / "out"), "--mode", "extract"]) == 0
        assert "Model credentials are not configured" in capsys.readouterr().out


class TestSubmitCli:
    @pytest.fixture
    def request_file(self, tmp_path, request_body):
        path = tmp_path / "tsla.json"
        path.write_text(json.dumps(request_body), encoding="utf-8")
        return path

    @pytest.fixture
    def reply(self, monkeypatch):
        sent = {}

        def install(status=200, body=None):
            def fake_post(url, json=None, timeout=None):
                sent.update(url=url, json=json)
                return httpx.Response(status, json=body or {}, request=httpx.Request("POST", url))

            monkeypatch.setattr(submit_cli.httpx, "post", fake_post)
            return sent

        return install

    def test_table_output(self, request_file, reply, make_decision):
        candidate = make_decision("c1", TESLA_TITLE, quote=TESLA, category="Product").wire()
        sent = reply(body={"candidates": [candidate], "meta": {"warnings": ["Model request timed out"]}})

        result = CliRunner().invoke(submit_cli.main, [str(request_file), "--mode", "local"])

        assert result.exit_code == 0
        assert sent["url"] == "http://localhost:8000/decision-extract"
        assert sent["json"]["options"] == {"mode": "local"}
        assert "Product" in result.output
        assert TESLA_TITLE in result.output
        assert "Warning: Model request timed out" in result.output

    def test_json_output(self, request_file, reply):
        reply(body={"candidates": []})
        result = CliRunner().invoke(submit_cli.main, [str(request_file), "--json"])
        assert json.loads(result.output) == {"candidates": []}

    def test_service_error(self, request_file, reply):
        reply(status=413, body={"detail": {"error": "too large"}})
        result = CliRunner().invoke(submit_cli.main, [str(request_file)])
        assert result.exit_code == 1
        assert "Service returned 413" in result.output

    def test_format_empty(self):
        assert submit_cli._format_table([]) == "No decision candidates found."
