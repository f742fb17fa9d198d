"""
Renderers for matrix benchmark results: JSON, text, CSV and the detailed log file.
"""

from __future__ import annotations
import json
import sys
from typing import Any, Dict, List, Optional, TextIO

import pandas as pd
from rich.console import Console
from rich.markup import escape

from ..benchmark import MatrixResult
from ..calibration.data import ModelFit

CONTEXTS = ("short_context", "long_context")
METRIC_COLUMNS = [
    f"{ctx}_{metric}"
    for ctx in CONTEXTS
    for metric in ("prompt_tokens_per_sec", "cached_prompt_tokens_per_sec",
                   "completion_tokens_per_sec", "r_squared")
]
# keys of ModelFit.tokens_per_sec()
RATE_NAMES = ("prompt", "cached_prompt", "completion")


def fit_metrics(prefix: str, fit: Optional[ModelFit]) -> Dict[str, float]:
    """Rounded tokens/sec and R² for one context; zeros where there is no data."""
    metrics = {f"{prefix}_{name}_tokens_per_sec": 0.0 for name in RATE_NAMES}
    metrics[f"{prefix}_r_squared"] = 0.0
    if fit is None:
        return metrics
    for name, tps in fit.tokens_per_sec().items():
        if tps is not None:
            metrics[f"{prefix}_{name}_tokens_per_sec"] = round(tps, 2)
    metrics[f"{prefix}_r_squared"] = round(fit.r_squared, 2)
    return metrics


def _context_metrics(mr: MatrixResult) -> Dict[str, float]:
    # failed combinations still carry the zeroed metric keys
    short_fit = mr.short_context_fit if mr.error is None else None
    long_fit = mr.long_context_fit if mr.error is None else None
    metrics = fit_metrics("short_context", short_fit)
    metrics.update(fit_metrics("long_context", long_fit))
    return metrics


def to_records(matrix_results: List[MatrixResult], show_local_score: bool = True) -> List[Dict[str, Any]]:
    records = []
    for mr in matrix_results:
        record: Dict[str, Any] = {"params": mr.output_params()}
        record.update(_context_metrics(mr))
        if mr.error is not None:
            record["error"] = str(mr.error)
        elif show_local_score and mr.local_score is not None:
            record["localscore_estimate"] = mr.local_score
        records.append(record)
    return records


def format_json(matrix_results: List[MatrixResult], file: TextIO = None, show_local_score: bool = True) -> str:
    text = json.dumps(to_records(matrix_results, show_local_score), indent=2)
    print(text, file=file or sys.stdout)
    return text


def _r_squared_style(r_squared: float) -> str:
    if r_squared < 0.7:
        return "red"
    if r_squared < 0.9:
        return "yellow"
    return "green"


TEXT_LABELS = {
    "prompt": "Prompt processing",
    "cached_prompt": "Cached prompt processing",
    "completion": "Completion generation",
}


def _print_context(console: Console, title: str, color: str, fit: Optional[ModelFit]) -> None:
    console.print(f"\n[bold {color}]{title}:[/bold {color}]")
    if fit is None:
        console.print(f"  [yellow]No {title.split()[0].lower()} context data available[/yellow]")
        return
    for name, tps in fit.tokens_per_sec().items():
        label = TEXT_LABELS[name]
        if tps is None:
            console.print(f"  [bold]{label}[/bold]: [yellow]No data[/yellow]")
        else:
            console.print(f"  [bold]{label}[/bold]: [green]{tps:.2f}[/green] tokens/sec")
    r2 = round(fit.r_squared, 2)
    style = _r_squared_style(r2)
    note = " (fallback)" if fit.is_fallback else ""
    console.print(f"  [bold]Model fit quality (R²)[/bold]: [{style}]{r2:.2f}{note}[/{style}]")


def format_text(matrix_results: List[MatrixResult], file: TextIO = None, show_local_score: bool = True) -> None:
    console = Console(file=file or sys.stdout, highlight=False)
    for i, mr in enumerate(matrix_results, 1):
        console.print(f"\n[bold cyan]=== Matrix Combination {i} ===[/bold cyan]")
        console.print("[bold]Parameters:[/bold]")
        # params and errors may contain shell output with square brackets
        for k, v in mr.output_params().items():
            console.print(f"  [bold]{escape(str(k))}[/bold]: {escape(str(v))}")

        if mr.error is not None:
            console.print(f"[red]Error[/red]: {escape(str(mr.error))}")
            continue

        _print_context(console, "Short Context Results", "blue", mr.short_context_fit)
        _print_context(console, "Long Context Results", "magenta", mr.long_context_fit)

        if show_local_score:
            if mr.local_score is not None:
                console.print(f"\n[bold]LocalScore estimate[/bold]: [green]{mr.local_score:.2f}[/green]")
            else:
                console.print("\n[bold]LocalScore estimate[/bold]: [yellow]Not available[/yellow]")


def to_dataframe(matrix_results: List[MatrixResult], show_local_score: bool = True) -> pd.DataFrame:
    """One row per combination; output params first, then metric columns."""
    param_columns: List[str] = []
    for mr in matrix_results:
        for k in mr.output_params():
            if k not in param_columns:
                param_columns.append(k)

    rows = []
    for mr in matrix_results:
        row: Dict[str, Any] = dict(mr.output_params())
        row.update(_context_metrics(mr))
        row["localscore_estimate"] = mr.local_score if mr.error is None else None
        row["error"] = str(mr.error) if mr.error is not None else ""
        rows.append(row)

    columns = param_columns + METRIC_COLUMNS
    if show_local_score:
        columns.append("localscore_estimate")
    columns.append("error")
    return pd.DataFrame(rows, columns=columns)


def format_csv(matrix_results: List[MatrixResult], file: TextIO = None, show_local_score: bool = True) -> str:
    text = to_dataframe(matrix_results, show_local_score).to_csv(index=False)
    (file or sys.stdout).write(text)
    return text


def _write_fit(out: TextIO, title: str, fit: Optional[ModelFit]) -> None:
    out.write(f"{title}:\n")
    if fit is None:
        out.write("  No data\n")
        return
    tokens_per_sec = fit.tokens_per_sec()
    for name, label, rate in (("prompt", "Prompt", fit.prompt_rate),
                              ("cached_prompt", "Cached prompt", fit.cached_prompt_rate),
                              ("completion", "Completion", fit.completion_rate)):
        tps = tokens_per_sec[name]
        tps_text = f"{tps:.2f} tokens/sec" if tps is not None else "n/a"
        out.write(f"  {label} rate: {rate:.4f} ms/token ({tps_text})\n")
    out.write(f"  R²: {fit.r_squared:.4f}{' (fallback)' if fit.is_fallback else ''}\n")
    out.write(f"  Data points: {fit.n_points}\n")


def write_to_file(out: TextIO, matrix_results: List[MatrixResult]) -> None:
    """Detailed results log: every parameter, both fits and each retained observation."""
    for i, mr in enumerate(matrix_results, 1):
        out.write(f"=== Matrix Combination {i} ===\n")
        out.write("Parameters:\n")
        for k, v in mr.params.items():
            out.write(f"  {k}: {v}\n")
        if mr.error is not None:
            out.write(f"Error: {mr.error}\n\n")
            continue
        _write_fit(out, "Short context model", mr.short_context_fit)
        _write_fit(out, "Long context model", mr.long_context_fit)
        out.write(f"LocalScore estimate: {mr.local_score if mr.local_score is not None else 'n/a'}\n")
        out.write("Observations (prompt_tokens, cached_prompt_tokens, completion_tokens, response_time_ms):\n")
        for r in mr.results:
            out.write(f"  {r.prompt_tokens}, {r.cached_prompt_tokens}, {r.completion_tokens}, {r.response_time_ms:.1f}\n")
        out.write("\n")
