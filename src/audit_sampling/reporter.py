"""Report generation for sampling results: Excel workbook and JSON document."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import xlsxwriter
from tqdm import tqdm

from .logging_setup import get_logger
from .models import EventCode, SampleItem, SamplingParameters, SamplingResult

BLUE_100 = "009cde"
GREEN_100 = "3f9c35"
DARK_GREY_100 = "63666a"
LIGHT_BLUE = "e5f5fc"

REPORT_FILENAME = "sample_selection_output.xlsx"
JSON_FILENAME = "sample_plan.json"
EXPORTED_BY = "Audit Sampling Engine"

log = get_logger("reporter")


def generate_reports(
    output_dir: Path,
    result: SamplingResult,
    params: SamplingParameters,
    run_id: str,
    include_parameters: bool = True,
    include_metadata: bool = True,
    show_progress: bool = False,
) -> Path:
    """Write the Excel workbook for a sampling result.

    Args:
        output_dir (Path): Directory that will receive the workbook.
        result (SamplingResult): Engine output to document.
        params (SamplingParameters): Parameters that produced the result.
        run_id (str): Unique identifier for the execution run.
        include_parameters (bool): Whether to add the Parameters Used sheet.
        include_metadata (bool): Whether to add the Calculation Metadata sheet.
        show_progress (bool): Whether to display progress bars while writing.

    Returns:
        Path: Filesystem path to the generated workbook.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / REPORT_FILENAME

    workbook = xlsxwriter.Workbook(str(output_path), {"constant_memory": True})
    formats = _create_workbook_formats(workbook)

    _write_plan_summary_sheet(workbook, formats, result, params, run_id)
    _write_sample_selected_sheet(
        workbook, formats, result.samples.total, show_progress
    )
    if result.strata:
        _write_strata_sheet(workbook, formats, result)
    if include_parameters:
        _write_parameters_used_sheet(workbook, formats, params)
    if include_metadata:
        _write_metadata_sheet(workbook, formats, result)

    workbook.close()

    log.info(EventCode.REPORT_WRITTEN.value, path=str(output_path))
    return output_path


def build_export_document(
    result: SamplingResult,
    params: SamplingParameters,
    include_parameters: bool = True,
    include_metadata: bool = True,
) -> dict[str, Any]:
    """Build the structured export of a result.

    Args:
        result (SamplingResult): Engine output.
        params (SamplingParameters): Parameters that produced the result.
        include_parameters (bool): Whether to embed the parameter block.
        include_metadata (bool): Whether to embed metadata, strata and
            warnings.

    Returns:
        dict[str, Any]: JSON-serialisable document.
    """
    document: dict[str, Any] = {
        "exportMetadata": {
            "exportedBy": EXPORTED_BY,
            "generatedAt": result.plan.generated_at.isoformat(),
        },
        "plan": result.plan.model_dump(mode="json"),
        "samples": [
            item.model_dump(mode="json") for item in result.samples.total
        ],
    }
    if include_parameters:
        document["parameters"] = params.model_dump(mode="json")
    if include_metadata:
        document["metadata"] = result.metadata.model_dump(mode="json")
        document["warnings"] = list(result.warnings)
        if result.strata:
            document["strata"] = [
                s.model_dump(mode="json", exclude={"transactions"})
                | {"population_size": s.size}
                for s in result.strata
            ]
    return document


def write_json_export(
    output_dir: Path,
    result: SamplingResult,
    params: SamplingParameters,
    include_parameters: bool = True,
    include_metadata: bool = True,
) -> Path:
    """Write ``build_export_document`` output as an indented JSON file."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / JSON_FILENAME
    document = build_export_document(
        result, params, include_parameters, include_metadata
    )
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    log.info(EventCode.REPORT_WRITTEN.value, path=str(output_path))
    return output_path


def _create_workbook_formats(workbook: xlsxwriter.Workbook) -> dict[str, Any]:
    """Create all formatting styles for the workbook.

    Args:
        workbook (xlsxwriter.Workbook): Workbook that needs format definitions.

    Returns:
        dict[str, Any]: Named format objects reused across sheets.
    """
    header = {
        "bold": True,
        "font_color": "#FFFFFF",
        "border": 1,
        "align": "center",
    }
    return {
        "header_blue": workbook.add_format(header | {"bg_color": BLUE_100}),
        "header_green": workbook.add_format(header | {"bg_color": GREEN_100}),
        "label": workbook.add_format(
            {"font_color": DARK_GREY_100, "border": 1}
        ),
        "value_wrap": workbook.add_format({"text_wrap": True, "border": 1}),
        "number": workbook.add_format({"num_format": "#,##0.00", "border": 1}),
        "integer": workbook.add_format({"num_format": "#,##0", "border": 1}),
        "percent": workbook.add_format({"num_format": "0.00%", "border": 1}),
        "alt_row": workbook.add_format({"bg_color": LIGHT_BLUE, "border": 1}),
        "normal_row": workbook.add_format({"border": 1}),
    }


def _write_rows(
    ws: Any,
    formats: dict[str, Any],
    rows: list[tuple[str, Any, str]],
    start: int = 1,
) -> None:
    """Write label/value rows; ``None`` values show as 'Not Specified'."""
    for r, (label, value, fmt_name) in enumerate(rows, start=start):
        ws.write(r, 0, label, formats["label"])
        if value is None:
            ws.write(r, 1, "Not Specified", formats["value_wrap"])
        else:
            ws.write(r, 1, value, formats[fmt_name])


def _write_plan_summary_sheet(
    workbook: xlsxwriter.Workbook,
    formats: dict[str, Any],
    result: SamplingResult,
    params: SamplingParameters,
    run_id: str,
) -> None:
    """Write the Plan Summary sheet.

    Args:
        workbook (xlsxwriter.Workbook): Workbook currently being authored.
        formats (dict[str, Any]): Dictionary of reusable formats.
        result (SamplingResult): Result whose plan is summarised.
        params (SamplingParameters): Parameters used in the run.
        run_id (str): Unique run identifier to display.
    """
    ws = workbook.add_worksheet("Plan Summary")
    ws.set_column("A:A", 30)
    ws.set_column("B:B", 70)

    ws.write(0, 0, "Metric", formats["header_blue"])
    ws.write(0, 1, "Value", formats["header_blue"])

    plan = result.plan
    rows = [
        ("Fiscal Year", params.fiscal_year, "integer"),
        ("Test Type", plan.test_type, "value_wrap"),
        ("Method", plan.method, "value_wrap"),
        ("Number of Items", params.population_size, "integer"),
        ("Total Population Value", params.population_sum, "number"),
        ("Recommended Sample Size", plan.recommended_sample_size, "integer"),
        ("Actual Sample Size", plan.actual_sample_size, "integer"),
        ("Targeted Items", len(result.samples.targeted), "integer"),
        ("Residual Items", len(result.samples.residual), "integer"),
        ("Coverage %", plan.coverage_percentage / 100.0, "percent"),
        ("Random Seed Used", plan.seed, "integer"),
        ("Parameter Hash", plan.param_hash, "value_wrap"),
        ("Warnings", "; ".join(result.warnings) or "None", "value_wrap"),
        ("Run Identifier", run_id, "value_wrap"),
        ("Generated At (UTC)", plan.generated_at.isoformat(), "value_wrap"),
    ]
    _write_rows(ws, formats, rows)


def _write_sample_selected_sheet(
    workbook: xlsxwriter.Workbook,
    formats: dict[str, Any],
    sample: list[SampleItem],
    show_progress: bool,
) -> None:
    """Write the Sample Selected sheet.

    Args:
        workbook (xlsxwriter.Workbook): Workbook being written.
        formats (dict[str, Any]): Formatting dictionary for styles.
        sample (list[SampleItem]): Selected items in ``total`` order.
        show_progress (bool): Whether to display tqdm progress bars.
    """
    ws = workbook.add_worksheet("Sample Selected")
    ws.set_column("A:A", 18)
    ws.set_column("B:B", 14)
    ws.set_column("C:D", 16)
    ws.set_column("E:E", 40)
    ws.set_column("F:K", 14)

    headers = [
        "Transaction ID",
        "Date",
        "Account Number",
        "Account Name",
        "Description",
        "Amount",
        "Risk Score",
        "Sample Type",
        "Selection Method",
        "Stratum",
        "Rank",
    ]
    for c, h in enumerate(headers):
        ws.write(0, c, h, formats["header_blue"])

    iterator = (
        sample
        if not show_progress
        else tqdm(sample, desc="Writing sample rows", unit="row")
    )
    for idx, item in enumerate(iterator, start=1):
        row_fmt = formats["alt_row"] if idx % 2 else formats["normal_row"]
        ws.write(idx, 0, item.transaction_id, row_fmt)
        ws.write(
            idx,
            1,
            item.transaction_date.isoformat() if item.transaction_date else "",
            row_fmt,
        )
        ws.write(idx, 2, item.account_number or "", row_fmt)
        ws.write(idx, 3, item.account_name or "", row_fmt)
        ws.write(idx, 4, item.description or "", row_fmt)
        ws.write_number(idx, 5, item.amount, formats["number"])
        if item.risk_score is None:
            ws.write_blank(idx, 6, None, row_fmt)
        else:
            ws.write_number(idx, 6, item.risk_score, formats["number"])
        ws.write(idx, 7, item.sample_type, row_fmt)
        ws.write(idx, 8, item.selection_method or "", row_fmt)
        if item.stratum_index is None:
            ws.write_blank(idx, 9, None, row_fmt)
        else:
            ws.write_number(idx, 9, item.stratum_index, formats["integer"])
        if item.rank is None:
            ws.write_blank(idx, 10, None, row_fmt)
        else:
            ws.write_number(idx, 10, item.rank, formats["integer"])


def _write_strata_sheet(
    workbook: xlsxwriter.Workbook,
    formats: dict[str, Any],
    result: SamplingResult,
) -> None:
    """Write one row per stratum with bounds, sizes and allocation."""
    ws = workbook.add_worksheet("Strata")
    ws.set_column("A:F", 18)

    headers = [
        "Stratum",
        "Lower Bound",
        "Upper Bound",
        "Items",
        "Total Amount",
        "Allocated Sample",
    ]
    for c, h in enumerate(headers):
        ws.write(0, c, h, formats["header_blue"])

    for r, stratum in enumerate(result.strata or [], start=1):
        ws.write_number(r, 0, stratum.index, formats["integer"])
        ws.write_number(r, 1, stratum.lower_bound, formats["number"])
        if stratum.upper_bound is None:
            ws.write(r, 2, "No upper bound", formats["value_wrap"])
        else:
            ws.write_number(r, 2, stratum.upper_bound, formats["number"])
        ws.write_number(r, 3, stratum.size, formats["integer"])
        ws.write_number(r, 4, stratum.total_amount, formats["number"])
        ws.write_number(
            r, 5, stratum.allocated_sample_size, formats["integer"]
        )


def _write_parameters_used_sheet(
    workbook: xlsxwriter.Workbook,
    formats: dict[str, Any],
    params: SamplingParameters,
) -> None:
    """Write the Parameters Used sheet.

    Args:
        workbook (xlsxwriter.Workbook): Workbook being populated.
        formats (dict[str, Any]): Formatting dictionary.
        params (SamplingParameters): Input parameters guiding sampling.
    """
    ws = workbook.add_worksheet("Parameters Used")
    ws.set_column("A:A", 30)
    ws.set_column("B:B", 45)

    ws.write(0, 0, "Parameter", formats["header_green"])
    ws.write(0, 1, "Value", formats["header_green"])

    bounds = (
        ", ".join(f"{b:g}" for b in params.strata_bounds)
        if params.strata_bounds
        else None
    )
    rows = [
        ("Fiscal Year", params.fiscal_year, "integer"),
        ("Test Type", params.test_type, "value_wrap"),
        ("Method", params.method, "value_wrap"),
        ("Materiality", params.materiality, "number"),
        ("Performance Materiality", params.performance_materiality, "number"),
        ("Expected Misstatement", params.expected_misstatement, "number"),
        ("Confidence Level", params.confidence_level / 100.0, "percent"),
        ("Risk Level", params.risk_level, "value_wrap"),
        (
            "Tolerable Deviation Rate",
            params.tolerable_deviation_rate,
            "number",
        ),
        ("Expected Deviation Rate", params.expected_deviation_rate, "number"),
        ("Threshold Mode", params.threshold_mode, "value_wrap"),
        ("Threshold Amount", params.threshold_amount, "number"),
        ("Strata Bounds", bounds, "value_wrap"),
        ("Minimum Per Stratum", params.min_per_stratum, "integer"),
        ("Risk Weighting", params.risk_weighting, "value_wrap"),
        ("Random Seed", params.seed, "integer"),
    ]
    _write_rows(ws, formats, rows)


def _write_metadata_sheet(
    workbook: xlsxwriter.Workbook,
    formats: dict[str, Any],
    result: SamplingResult,
) -> None:
    """Write threshold, risk matrix and the sample-size calculation trace."""
    ws = workbook.add_worksheet("Calculation Metadata")
    ws.set_column("A:A", 30)
    ws.set_column("B:B", 45)

    ws.write(0, 0, "Metric", formats["header_green"])
    ws.write(0, 1, "Value", formats["header_green"])

    meta = result.metadata
    rows = [
        ("Threshold Used", meta.threshold_used, "number"),
        ("Risk Factor (low)", meta.risk_matrix_used.low, "number"),
        ("Risk Factor (moderate)", meta.risk_matrix_used.moderate, "number"),
        ("Risk Factor (high)", meta.risk_matrix_used.high, "number"),
        ("Base Sample Size", meta.calculations.n_base, "integer"),
        ("Applied Risk Factor", meta.calculations.risk_factor, "number"),
        ("Final Sample Size", meta.calculations.final_n, "integer"),
    ]
    _write_rows(ws, formats, rows)
