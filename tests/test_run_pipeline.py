"""Tests for pipeline orchestration and the command-line entry point."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from graph_builders import crate_doc, function, module, primitive, resolved, struct, use
from rustskel.cli import EXIT_DIAGNOSTICS, EXIT_FATAL, main
from rustskel.errors import CycleDetected, MalformedGraph, SchemaVersionMismatch
from rustskel.render_options import RenderOptions
from rustskel.run_pipeline import _stage, run_pipeline_document, run_pipeline_file


def _simple() -> dict:
    return crate_doc(
        [
            module(1, "a", [2, 3]),
            function(2, "visible", output=primitive("u8")),
            function(3, "hidden", visibility="default"),
        ],
        [1],
    )


def _cyclic() -> dict:
    return crate_doc(
        [use(10, "A", "b::B", 11), use(11, "B", "a::A", 10)],
        [10, 11],
    )


def _write(tmp_path: Path, doc: dict, name: str = "demo.json") -> Path:
    target = tmp_path / name
    target.write_text(json.dumps(doc), encoding="utf-8")
    return target


def test_text_output_is_deterministic() -> None:
    """Verify identical input and options give identical text."""
    first = run_pipeline_document(_simple(), RenderOptions()).output
    second = run_pipeline_document(_simple(), RenderOptions()).output
    assert first == second


def test_result_reports_degradation() -> None:
    """Verify the result exposes diagnostics of degraded items."""
    doc = crate_doc([function(1, "f", output=resolved("Missing", 77))], [1])
    result = run_pipeline_document(doc, RenderOptions())
    assert result.degraded
    assert [d.code for d in result.diagnostics] == ["UnresolvedReference"]
    assert not run_pipeline_document(_simple(), RenderOptions()).degraded


def test_fatal_errors_carry_their_stage() -> None:
    """Verify fatal errors name the stage that raised them."""
    with pytest.raises(CycleDetected) as cycle:
        run_pipeline_document(_cyclic(), RenderOptions())
    assert str(cycle.value).startswith("[resolve] re-export cycle")

    doc = _simple()
    doc["format_version"] = 1
    with pytest.raises(SchemaVersionMismatch) as version:
        run_pipeline_document(doc, RenderOptions())
    assert version.value.stage == "load"


def test_stage_wraps_unexpected_shapes() -> None:
    """Verify lookup errors inside a stage become MalformedGraph."""

    def broken() -> None:
        raise KeyError("items")

    with pytest.raises(MalformedGraph) as excinfo:
        _stage("merge", broken)
    assert excinfo.value.stage == "merge"


def test_stage_logs_the_wrapped_traceback(caplog: pytest.LogCaptureFixture) -> None:
    """Verify the original traceback stays visible at debug level."""

    def broken() -> None:
        raise AttributeError("get")

    with caplog.at_level("DEBUG", logger="rustskel.run_pipeline"):
        with pytest.raises(MalformedGraph) as excinfo:
            _stage("render", broken)
    assert isinstance(excinfo.value.__cause__, AttributeError)
    record = next(r for r in caplog.records if r.name == "rustskel.run_pipeline")
    assert record.exc_info is not None
    assert record.exc_info[0] is AttributeError


def test_run_pipeline_file_reads_yaml(tmp_path: Path) -> None:
    """Verify YAML metadata renders like its JSON equivalent."""
    yaml_file = tmp_path / "demo.yaml"
    yaml_file.write_text(yaml.safe_dump(_simple()), encoding="utf-8")
    from_yaml = run_pipeline_file(yaml_file, RenderOptions()).output
    from_json = run_pipeline_file(_write(tmp_path, _simple()), RenderOptions()).output
    assert from_yaml == from_json


def test_main_prints_skeleton(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Verify the command prints the skeleton and exits 0."""
    metadata = _write(tmp_path, _simple())
    with patch.object(sys, "argv", ["rustskel", str(metadata)]):
        assert main() == 0
    out = capsys.readouterr().out
    assert out.startswith("// demo 0.1.0 (skeleton, bodies elided)\n")
    assert "pub fn visible() -> u8 {}" in out
    assert "hidden" not in out


def test_main_private_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Verify --private includes private items."""
    assert main([str(_write(tmp_path, _simple())), "--private"]) == 0
    assert "        // private\n        fn hidden() {}\n" in capsys.readouterr().out


def test_main_raw_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Verify --raw prints canonical JSON."""
    assert main([str(_write(tmp_path, _simple())), "--raw"]) == 0
    raw = json.loads(capsys.readouterr().out)
    assert list(raw["index"]) == ["0", "1", "2"]
    assert raw["summary"]["private_items"] == 1


def test_main_config_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Verify options can come from a YAML config file."""
    config = tmp_path / "rustskel.yml"
    config.write_text(yaml.safe_dump({"render": {"include_private": True}}), encoding="utf-8")
    assert main([str(_write(tmp_path, _simple())), "--config", str(config)]) == 0
    assert "fn hidden() {}" in capsys.readouterr().out


def test_main_fatal_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Verify fatal errors print to stderr, exit 2, and produce no output."""
    assert main([str(_write(tmp_path, _cyclic()))]) == EXIT_FATAL
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "error: [resolve] re-export cycle" in captured.err


def test_main_strict_fails_on_degraded_output(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Verify --strict turns diagnostics into a non-zero exit."""
    doc = crate_doc([struct(1, "S", None), function(2, "f", output=resolved("Gone", 99))], [1, 2])
    metadata = _write(tmp_path, doc)
    assert main([str(metadata)]) == 0
    assert main([str(metadata), "--strict"]) == EXIT_DIAGNOSTICS
    assert "Gone /* unresolved */" in capsys.readouterr().out


def test_main_missing_file(tmp_path: Path) -> None:
    """Verify a missing metadata file aborts."""
    with pytest.raises(SystemExit, match="not found"):
        main([str(tmp_path / "absent.json")])


def test_feature_flags_are_exclusive(tmp_path: Path) -> None:
    """Verify --features and --all-features cannot be combined."""
    metadata = _write(tmp_path, _simple())
    with pytest.raises(SystemExit):
        main([str(metadata), "--features", "x", "--all-features"])
