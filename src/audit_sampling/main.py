"""CLI entry point for the audit sampling engine."""

from __future__ import annotations

import argparse
import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from .loader import load_population
from .logging_setup import configure_logging, get_logger
from .models import (
    EventCode,
    RiskMatrix,
    RunSummary,
    SamplingParameters,
    Transaction,
    default_risk_matrix,
)
from .reporter import generate_reports, write_json_export
from .sampler import generate_sample
from .stratification import quantile_strata_bounds
from .threshold import suggest_threshold
from .validator import parameter_warnings, validate_parameters

EXIT_INVALID_PARAMETERS = 2


def _float_list(value: str) -> list[float]:
    try:
        return [float(v) for v in value.split(",") if v.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number list: {value}") from e


def _risk_matrix(value: str) -> RiskMatrix:
    factors = _float_list(value)
    if len(factors) != 3:
        raise argparse.ArgumentTypeError(
            "risk matrix needs three factors: low,moderate,high"
        )
    return RiskMatrix(low=factors[0], moderate=factors[1], high=factors[2])


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the audit sampling CLI.

    Args:
        argv (list[str] | None): Arguments to parse; defaults to ``sys.argv``.

    Returns:
        argparse.Namespace: Parsed command-line namespace.
    """

    parser = argparse.ArgumentParser(
        description="Statistical audit sampling (SRS, systematic, MUS, stratified)",
    )
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to population CSV file",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory where the reports will be saved",
    )
    parser.add_argument(
        "--fiscal-year",
        type=int,
        default=datetime.now(timezone.utc).year,
        help="Fiscal year under audit",
    )
    parser.add_argument(
        "--test-type",
        choices=["SUBSTANTIVE", "CONTROL"],
        default="SUBSTANTIVE",
        help="Substantive (monetary) or control (attribute) test",
    )
    parser.add_argument(
        "--method",
        choices=["SRS", "SYSTEMATIC", "MUS", "STRATIFIED"],
        default="MUS",
        help="Selection method for the residual population",
    )
    parser.add_argument("--materiality", type=float, default=None)
    parser.add_argument(
        "--performance-materiality", type=float, default=None
    )
    parser.add_argument("--expected-misstatement", type=float, default=None)
    parser.add_argument(
        "--confidence",
        type=int,
        default=95,
        help="Confidence level in percent (90, 95 or 99)",
    )
    parser.add_argument(
        "--risk-level",
        choices=["low", "moderate", "high"],
        default="moderate",
    )
    parser.add_argument(
        "--tolerable-deviation",
        type=float,
        default=None,
        help="Tolerable deviation rate in percent (control tests)",
    )
    parser.add_argument(
        "--expected-deviation",
        type=float,
        default=None,
        help="Expected deviation rate in percent (control tests)",
    )
    parser.add_argument(
        "--threshold-mode",
        choices=[
            "disabled",
            "performance-materiality",
            "total-materiality",
            "custom",
        ],
        default="disabled",
        help="Basis for the high-value threshold",
    )
    parser.add_argument(
        "--confidence-factor",
        type=float,
        default=1.0,
        help="Divisor used when suggesting a custom threshold",
    )
    parser.add_argument(
        "--threshold-amount",
        type=float,
        default=None,
        help="Custom threshold amount; suggested from materiality if omitted",
    )
    parser.add_argument(
        "--strata-bounds",
        type=_float_list,
        default=None,
        help="Comma separated stratum bounds, e.g. 10000,50000",
    )
    parser.add_argument(
        "--strata-count",
        type=int,
        default=None,
        help="Derive equal-count strata bounds when none are given",
    )
    parser.add_argument("--min-per-stratum", type=int, default=2)
    parser.add_argument(
        "--risk-weighting",
        choices=["disabled", "moderate", "high"],
        default="disabled",
        help="Weight MUS selection by transaction risk scores",
    )
    parser.add_argument(
        "--risk-matrix",
        type=_risk_matrix,
        default=None,
        help="Risk factors as low,moderate,high (default 0.8,1.0,1.3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Deterministic random seed",
    )
    parser.add_argument(
        "--no-parameters",
        action="store_true",
        help="Leave the parameter block out of the reports",
    )
    parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Leave the calculation metadata out of the reports",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show progress bars while writing reports",
    )
    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier; if omitted a UUID is generated",
    )
    return parser.parse_args(argv)


def apply_planning_suggestions(
    params: SamplingParameters,
    transactions: list[Transaction],
    strata_count: int | None = None,
) -> SamplingParameters:
    """Fill in a custom threshold or strata bounds the user left open.

    A ``custom`` threshold mode without an amount takes the suggested
    threshold, and a stratified run without bounds takes equal-count
    quantile bounds when ``strata_count`` is given. Values the user supplied
    are never replaced.

    Args:
        params (SamplingParameters): Parameters built from the CLI flags.
        transactions (list[Transaction]): Loaded population.
        strata_count (int | None): Desired number of strata.

    Returns:
        SamplingParameters: Parameters with the suggestions applied.
    """
    updates: dict[str, object] = {}
    if params.threshold_mode == "custom" and params.threshold_amount is None:
        suggested = suggest_threshold(params)
        if suggested > 0:
            updates["threshold_amount"] = round(suggested, 2)
    if (
        params.method == "STRATIFIED"
        and not params.strata_bounds
        and strata_count
    ):
        bounds = quantile_strata_bounds(
            [t.amount for t in transactions], strata_count
        )
        if bounds:
            updates["strata_bounds"] = bounds
    if not updates:
        return params
    get_logger("main").info("planning_suggestions_applied", **updates)
    return params.model_copy(update=updates)


def main(argv: list[str] | None = None) -> int:
    """Run the sampling workflow from CLI parameters to report output.

    Args:
        argv (list[str] | None): Arguments to parse; defaults to ``sys.argv``.

    Returns:
        int: Process exit status code (0 indicates success, 2 invalid
        parameters).
    """

    args = parse_args(argv)
    run_id = args.run_id if args.run_id else str(uuid4())
    configure_logging(run_id)
    log = get_logger("main")

    started = time.perf_counter()
    started_dt = datetime.now(timezone.utc)
    transactions, quality_report = load_population(args.input)
    loading_seconds = time.perf_counter() - started

    params = SamplingParameters(
        fiscal_year=args.fiscal_year,
        test_type=args.test_type,
        method=args.method,
        population_size=len(transactions),
        population_sum=sum(t.amount_abs for t in transactions),
        materiality=args.materiality,
        performance_materiality=args.performance_materiality,
        expected_misstatement=args.expected_misstatement,
        confidence_level=args.confidence,
        risk_level=args.risk_level,
        tolerable_deviation_rate=args.tolerable_deviation,
        expected_deviation_rate=args.expected_deviation,
        threshold_mode=args.threshold_mode,
        threshold_amount=args.threshold_amount,
        confidence_factor=args.confidence_factor,
        strata_bounds=args.strata_bounds,
        min_per_stratum=args.min_per_stratum,
        risk_weighting=args.risk_weighting,
        risk_matrix=args.risk_matrix or default_risk_matrix(),
        seed=args.seed,
    )
    params = apply_planning_suggestions(
        params, transactions, args.strata_count
    )
    log.info(EventCode.RUN_START.value, parameters=params.model_dump())

    errors = validate_parameters(params)
    if errors:
        log.error(EventCode.VALIDATION_FAILED.value, errors=errors)
        for message in errors:
            print(f"Invalid parameters: {message}", file=sys.stderr)
        return EXIT_INVALID_PARAMETERS
    for warning in parameter_warnings(params):
        log.warning(EventCode.PARAMETER_WARNING.value, message=warning)

    sampling_start = time.perf_counter()
    result = generate_sample(transactions, params)
    sampling_seconds = time.perf_counter() - sampling_start

    report_start = time.perf_counter()
    include_parameters = not args.no_parameters
    include_metadata = not args.no_metadata
    report_path = generate_reports(
        args.output_dir,
        result,
        params,
        run_id,
        include_parameters=include_parameters,
        include_metadata=include_metadata,
        show_progress=args.progress,
    )
    json_path = write_json_export(
        args.output_dir,
        result,
        params,
        include_parameters=include_parameters,
        include_metadata=include_metadata,
    )
    reporting_seconds = time.perf_counter() - report_start
    print(f"Report generated at: {report_path}")

    summary = RunSummary(
        run_id=run_id,
        started_at_utc=started_dt,
        finished_at_utc=datetime.now(timezone.utc),
        duration_seconds=round(time.perf_counter() - started, 2),
        loading_seconds=round(loading_seconds, 2),
        sampling_seconds=round(sampling_seconds, 2),
        reporting_seconds=round(reporting_seconds, 2),
        parameters=params.model_dump(mode="json"),
        data_quality=quality_report.model_dump(),
        plan=result.plan.model_dump(mode="json"),
        warnings=result.warnings,
        sample_size=len(result.samples.total),
        output_excel=str(report_path),
        output_json=str(json_path),
    )
    runs_dir = args.output_dir / "runs"
    runs_dir.mkdir(parents=True, exist_ok=True)
    summary_path = runs_dir / f"{run_id}.json"
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(summary.model_dump(mode="json"), f, indent=2)
    log.info(EventCode.RUN_SUMMARY.value, path=str(summary_path))
    print(f"Summary written to: {summary_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
