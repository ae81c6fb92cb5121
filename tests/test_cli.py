"""Unit tests for the CLI module (code_reconciler.cli.main)."""

from __future__ import annotations

import io
import json

import pytest
from unittest.mock import patch

from code_reconciler.cli.main import (
    EXIT_EXTRACTION_FAILED,
    EXIT_INVALID_INPUT,
    EXIT_PATCH_NOT_FOUND,
    EXIT_SUCCESS,
    build_parser,
    main,
    read_response,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


@pytest.fixture()
def repo(tmp_path):
    root = tmp_path / "repo"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.ts").write_text("const x = 1;\nconst y = 2;\n", encoding="utf-8")
    return root


def _patch_response(search):
    return json.dumps({
        "files": [{
            "path": "src/app.ts",
            "operation": "patch",
            "patches": [{"search": search, "replace": "const x = 10;"}],
        }],
        "summary": "bump x",
    })


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class TestBuildParser:

    def test_defaults(self):
        args = build_parser().parse_args(["response.txt"])
        assert args.response == "response.txt"
        assert args.repo == ""
        assert args.verbose is False
        assert args.dry_run is False
        assert args.output_json is False
        assert args.fallback is False

    def test_requires_response(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# read_response
# ---------------------------------------------------------------------------

class TestReadResponse:

    def test_json_file_is_decoded(self, tmp_path):
        path = _write(tmp_path, "r.json", '{"type": "result", "result": "x"}')
        assert read_response(path) == {"type": "result", "result": "x"}

    def test_text_file_is_passed_through(self, tmp_path):
        path = _write(tmp_path, "r.txt", "Sure! Here it is")
        assert read_response(path) == "Sure! Here it is"

    def test_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("plain"))
        assert read_response("-") == "plain"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            read_response(str(tmp_path / "missing.txt"))
        assert exc_info.value.code == EXIT_INVALID_INPUT


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------

class TestMain:

    def test_dry_run(self, capsys):
        assert main(["-", "--dry-run", "--output-json"]) == EXIT_SUCCESS
        config = json.loads(capsys.readouterr().out)
        assert config["response"] == "-"
        assert config["settings"]["max_envelope_depth"] == 5

    def test_dry_run_human(self, capsys):
        assert main(["-", "--dry-run"]) == EXIT_SUCCESS
        assert "Configuration:" in capsys.readouterr().out

    def test_extracts_fenced_response(self, tmp_path, capsys):
        path = _write(
            tmp_path,
            "r.txt",
            '```json\n{"files":[{"path":"a.ts","content":"x","operation":"create"}],'
            '"summary":"ok"}\n```',
        )
        assert main([path, "--output-json"]) == EXIT_SUCCESS
        payload = json.loads(capsys.readouterr().out)
        assert payload["outcome"]["summary"] == "ok"
        assert payload["outcome"]["files"][0]["operation"] == "create"
        assert "fenced-block=1" in payload["metrics"]

    def test_human_output(self, tmp_path, capsys):
        path = _write(tmp_path, "r.txt", "The task is already complete, no changes needed.")
        assert main([path]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Code Reconciler Results" in out
        assert "File edits: 0" in out

    def test_extraction_failure_exit_code(self, tmp_path, capsys):
        path = _write(tmp_path, "r.txt", "I am not sure what you mean.")
        assert main([path]) == EXIT_EXTRACTION_FAILED
        assert "Extraction failed" in capsys.readouterr().out

    def test_missing_response_file(self, tmp_path):
        assert main([str(tmp_path / "nope.txt")]) == EXIT_INVALID_INPUT

    def test_invalid_repo(self, tmp_path):
        path = _write(tmp_path, "r.txt", "{}")
        assert main([path, "--repo", str(tmp_path / "no-such-dir")]) == EXIT_INVALID_INPUT

    def test_patch_check_against_repo(self, tmp_path, repo, capsys):
        path = _write(tmp_path, "r.json", _patch_response("const x = 1;"))
        assert main([path, "--repo", str(repo), "--output-json"]) == EXIT_SUCCESS
        payload = json.loads(capsys.readouterr().out)
        [report] = payload["patches"]
        assert report["matched"] is True
        assert report["strategy"] == "exact"
        # Never writes to the repository
        assert (repo / "src" / "app.ts").read_text(encoding="utf-8") == "const x = 1;\nconst y = 2;\n"

    def test_patch_miss_exit_code(self, tmp_path, repo, capsys):
        path = _write(tmp_path, "r.json", _patch_response("let totally = different();"))
        assert main([path, "--repo", str(repo)]) == EXIT_PATCH_NOT_FOUND
        assert "MISS src/app.ts #1" in capsys.readouterr().out

    def test_patch_for_missing_file(self, tmp_path, repo, capsys):
        response = json.loads(_patch_response("const x = 1;"))
        response["files"][0]["path"] = "src/gone.ts"
        path = _write(tmp_path, "r.json", json.dumps(response))
        assert main([path, "--repo", str(repo)]) == EXIT_PATCH_NOT_FOUND

    def test_patch_for_non_utf8_file(self, tmp_path, repo, capsys):
        (repo / "src" / "app.ts").write_bytes(b"const x = 1;\xff\xfe\n")
        path = _write(tmp_path, "r.json", _patch_response("const x = 1;"))
        assert main([path, "--repo", str(repo), "--output-json"]) == EXIT_PATCH_NOT_FOUND
        payload = json.loads(capsys.readouterr().out)
        assert payload["patches"][0]["matched"] is False
        assert payload["patches"][0]["reason"].startswith("cannot read file")

    @patch("code_reconciler.cli.main.ModelReextractor")
    def test_fallback(self, mock_reextractor, tmp_path, capsys):
        mock_reextractor.return_value.return_value = '{"files": [], "summary": "recovered"}'
        path = _write(tmp_path, "r.txt", "I am not sure what you mean.")
        assert main([path, "--fallback", "--output-json"]) == EXIT_SUCCESS
        payload = json.loads(capsys.readouterr().out)
        assert payload["outcome"]["summary"] == "recovered"

    def test_fallback_not_configured(self, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        path = _write(tmp_path, "r.txt", "I am not sure what you mean.")
        assert main([path, "--fallback"]) == EXIT_EXTRACTION_FAILED
        assert "Extraction error" in capsys.readouterr().err

    def test_invalid_env_setting(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RECONCILER_MAX_ENVELOPE_DEPTH", "deep")
        path = _write(tmp_path, "r.txt", "x")
        assert main([path]) == EXIT_INVALID_INPUT
