## stackphy — CLI integration tests

import os, sys
import json
import subprocess
from pathlib import Path


def run_cli(*cli_args: str | Path, env: dict | None = None, stdin: str | None = None) -> subprocess.CompletedProcess:
    args = [sys.executable, "-m", "stackphy", "--plain"]
    args.extend(str(arg) for arg in cli_args)
    merged_env = os.environ.copy()
    src = str(Path(__file__).resolve().parents[1] / "src")
    merged_env["PYTHONPATH"] = os.pathsep.join(p for p in (src, merged_env.get("PYTHONPATH")) if p)
    if env:
        merged_env.update(env)
    return subprocess.run(args, input=stdin, capture_output=True, text=True, env=merged_env)


def tests_dir() -> Path:
    return Path(__file__).resolve().parent


def test_cli_export_to_file(tmp_path: Path):
    output = tmp_path / "model.json"
    result = run_cli("export", tests_dir() / "model.sp", output, "--title", "Primates")
    assert result.returncode == 0, result.stdout
    doc = json.loads(output.read_text(encoding='utf-8'))
    assert doc["metadata"]["title"] == "Primates"
    assert doc["metadata"]["software"]["name"] == "stackphy"
    assert doc["metadata"]["created"] == doc["metadata"]["modified"]
    assert set(doc["randomVariables"]) == {"tree", "kappa", "freqs", "alignment", "clock"}
    assert set(doc["deterministicFunctions"]) == {"subst_model"}
    assert set(doc["constraints"]) == {"root_age"}
    assert doc["randomVariables"]["alignment"]["observedValue"]["gorilla"] == "ACGAACGTAC"
    assert "Exported 7 binding(s)" in result.stdout


def test_cli_export_to_stdout():
    result = run_cli("export", tests_dir() / "model.sp")
    assert result.returncode == 0
    doc = json.loads(result.stdout)
    assert doc["deterministicFunctions"]["subst_model"]["function"] == "hky"


def test_cli_export_rejects_non_json_output(tmp_path: Path):
    output = tmp_path / "model.txt"
    result = run_cli("export", tests_dir() / "model.sp", output)
    assert result.returncode != 0
    assert ".json" in result.stdout + result.stderr
    assert not output.exists()


def test_cli_export_failure_leaves_no_file(tmp_path: Path):
    output = tmp_path / "broken.json"
    result = run_cli("export", tests_dir() / "error-stack.sp", output)
    assert result.returncode != 0
    assert not output.exists()


def test_cli_missing_script():
    result = run_cli("export", tests_dir() / "does-not-exist.sp")
    assert result.returncode != 0
    assert "not found" in result.stdout + result.stderr


def test_cli_script_found_along_search_path():
    result = run_cli("run", "model.sp", env={"STACKPHY_PATH": str(tests_dir())})
    assert result.returncode == 0
    assert "subst_model" in result.stdout


def test_cli_parser_error_shows_context():
    result = run_cli("run", tests_dir() / "error-parser.sp")
    assert result.returncode != 0
    out = result.stdout
    assert "SYNTAX ERROR." in out
    assert "Parsing `" in out
    assert "File \"" in out


def test_cli_name_error_shows_source_line():
    result = run_cli("run", tests_dir() / "error-name.sp")
    assert result.returncode != 0
    out = result.stdout
    assert "NAME ERROR." in out
    assert "kapa" in out
    assert ", line 2, in " in out


def test_cli_stack_error_shows_stack():
    result = run_cli("run", tests_dir() / "error-stack.sp")
    assert result.returncode != 0
    out = result.stdout
    assert "STACK ERROR." in out
    assert "Stack content is" in out
    assert "lognormal" in out


def test_cli_binding_error():
    result = run_cli("run", tests_dir() / "error-binding.sp")
    assert result.returncode != 0
    assert "BINDING ERROR." in result.stdout
    assert "rate" in result.stdout


def test_cli_warns_about_leftover_values():
    result = run_cli("run", tests_dir() / "leftover.sp")
    assert result.returncode == 0
    assert "STACK NOT EMPTY." in result.stdout
    assert "42.0" in result.stdout


def test_cli_stdin_runs_program():
    result = run_cli(stdin='1.0 exponential "rate" ~\n')
    assert result.returncode == 0
    assert "rate" in result.stdout
    assert "Exponential" in result.stdout


def test_cli_stats_are_reported():
    result = run_cli("--stats", "run", tests_dir() / "model.sp")
    assert result.returncode == 0
    assert "STATISTICS." in result.stdout
    assert "step\t" in result.stdout


def test_cli_export_error_writes_nothing(tmp_path: Path):
    script = tmp_path / "huge.sp"
    script.write_text('1e400 "big" =\n', encoding='utf-8')
    output = tmp_path / "huge.json"
    result = run_cli("export", script, output)
    assert result.returncode != 0
    assert "EXPORT ERROR." in result.stdout
    assert not output.exists()


def test_cli_bad_string_escape_is_a_syntax_error(tmp_path: Path):
    script = tmp_path / "escape.sp"
    script.write_text('"\\N" "x" =\n', encoding='utf-8')
    result = run_cli("run", script)
    assert result.returncode != 0
    assert "SYNTAX ERROR." in result.stdout
    assert "Traceback" not in result.stdout
