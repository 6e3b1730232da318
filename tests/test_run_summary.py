"""Tests for the CLI workflow and run summary JSON generation."""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from audit_sampling.main import (
    EXIT_INVALID_PARAMETERS,
    apply_planning_suggestions,
    main,
)
from audit_sampling.models import SamplingParameters, Transaction

SRC_DIR = Path(__file__).resolve().parents[1] / "src"


@pytest.fixture()
def population_csv(tmp_path: Path) -> Path:
    csv = tmp_path / "data.csv"
    lines = ["transaction_id,amount,date,account_number,description"]
    lines += [
        f"T{i},{i * 1000},2024-01-{(i % 28) + 1:02d},4000,Line {i}"
        for i in range(1, 41)
    ]
    csv.write_text("\n".join(lines) + "\n")
    return csv


def _cli_args(csv: Path, out_dir: Path, *extra: str) -> list[str]:
    return [
        "--input",
        str(csv),
        "--output-dir",
        str(out_dir),
        "--fiscal-year",
        "2024",
        "--materiality",
        "50000",
        "--expected-misstatement",
        "5000",
        "--seed",
        "5",
        *extra,
    ]


def test_run_summary_created(tmp_path: Path, population_csv: Path) -> None:
    out_dir = tmp_path / "out"
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(SRC_DIR), env.get("PYTHONPATH")])
    )
    cmd = [
        sys.executable,
        "-m",
        "audit_sampling.main",
        *_cli_args(population_csv, out_dir, "--run-id", "cli-run"),
    ]
    subprocess.run(cmd, check=True, env=env)

    summaries = list((out_dir / "runs").glob("*.json"))
    assert summaries, "No run summary JSON generated"
    data = json.loads(summaries[0].read_text())
    assert data["run_id"] == "cli-run"
    assert summaries[0].name == "cli-run.json"
    assert isinstance(data["duration_seconds"], float)
    assert round(data["duration_seconds"], 2) == data["duration_seconds"]
    assert data["plan"]["seed"] == 5
    assert len(data["plan"]["param_hash"]) == 16
    assert data["data_quality"]["total_rows_loaded"] == 40
    assert (out_dir / "sample_selection_output.xlsx").exists()
    assert (out_dir / "sample_plan.json").exists()


def test_main_is_reproducible(tmp_path: Path, population_csv: Path) -> None:
    samples = []
    for name in ("first", "second"):
        out_dir = tmp_path / name
        assert main(_cli_args(population_csv, out_dir, "--run-id", name)) == 0
        document = json.loads((out_dir / "sample_plan.json").read_text())
        samples.append([s["transaction_id"] for s in document["samples"]])

    assert samples[0] == samples[1]
    assert samples[0]


def test_main_respects_report_toggles(
    tmp_path: Path, population_csv: Path
) -> None:
    out_dir = tmp_path / "out"
    args = _cli_args(
        population_csv, out_dir, "--no-parameters", "--no-metadata"
    )
    assert main(args) == 0

    document = json.loads((out_dir / "sample_plan.json").read_text())
    assert "parameters" not in document
    assert "metadata" not in document


def test_invalid_parameters_exit_with_code(
    tmp_path: Path,
    population_csv: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    out_dir = tmp_path / "out"
    args = _cli_args(population_csv, out_dir, "--confidence", "80")

    assert main(args) == EXIT_INVALID_PARAMETERS
    assert "Confidence level" in capsys.readouterr().err
    assert not (out_dir / "runs").exists()


def test_stratified_cli_options(tmp_path: Path, population_csv: Path) -> None:
    out_dir = tmp_path / "out"
    args = _cli_args(
        population_csv,
        out_dir,
        "--method",
        "STRATIFIED",
        "--strata-bounds",
        "10000,25000",
        "--risk-matrix",
        "0.5,1.0,2.0",
        "--risk-level",
        "low",
    )
    assert main(args) == 0

    document = json.loads((out_dir / "sample_plan.json").read_text())
    assert len(document["strata"]) == 3
    assert document["parameters"]["risk_matrix"]["low"] == 0.5
    assert document["metadata"]["calculations"]["risk_factor"] == 0.5


def test_custom_threshold_is_suggested_when_omitted(
    tmp_path: Path, population_csv: Path
) -> None:
    out_dir = tmp_path / "out"
    args = _cli_args(
        population_csv,
        out_dir,
        "--threshold-mode",
        "custom",
        "--performance-materiality",
        "30000",
    )
    assert main(args) == 0

    document = json.loads((out_dir / "sample_plan.json").read_text())
    targeted = [
        s["transaction_id"]
        for s in document["samples"]
        if s["sample_type"] == "TARGETED"
    ]
    assert document["parameters"]["threshold_amount"] == 25000.0
    assert document["metadata"]["threshold_used"] == 25000.0
    assert targeted == [f"T{i}" for i in range(25, 41)]


def test_strata_count_derives_bounds(
    tmp_path: Path, population_csv: Path
) -> None:
    out_dir = tmp_path / "out"
    args = _cli_args(
        population_csv,
        out_dir,
        "--method",
        "STRATIFIED",
        "--strata-count",
        "4",
    )
    assert main(args) == 0

    document = json.loads((out_dir / "sample_plan.json").read_text())
    bounds = document["parameters"]["strata_bounds"]
    assert bounds == [11000.0, 21000.0, 31000.0]
    assert len(document["strata"]) == 4


def test_planning_suggestions_keep_user_values(
    default_params: SamplingParameters,
    standard_population: list[Transaction],
) -> None:
    params = default_params.model_copy(
        update={
            "method": "STRATIFIED",
            "strata_bounds": [50000.0],
            "threshold_mode": "custom",
            "threshold_amount": 90000.0,
            "confidence_factor": 2.0,
        }
    )
    assert apply_planning_suggestions(params, standard_population, 4) is params

    open_params = params.model_copy(
        update={"strata_bounds": None, "threshold_amount": None}
    )
    suggested = apply_planning_suggestions(
        open_params, standard_population, 4
    )
    assert suggested.threshold_amount == 32500.0
    assert suggested.strata_bounds == [26000.0, 51000.0, 76000.0]
