"""
Presentation helpers for CLI commands.

The functions here format and print roster entries, query results and DVH
summaries.  Console logic lives here so that the search modules stay free of
I/O beyond their network calls.
"""

from __future__ import annotations

import sys
from typing import Dict, List

import click
import tableprint as tp

from ..models import DVHSeries, PatientEntry, PlanCheckMatch
from ..results import ResultTable

# Column width caps to keep tables narrow on typical terminals
COL_CAPS = {"Patient": 24, "Plan": 28, "Machine": 16, "Limit set": 24}


def _echo_count(kind: str, n: int) -> None:
    """Emit a one-line “Found N <kind>(s)” banner."""
    label = kind if n == 1 else kind + "s"
    click.echo(f"Found {n} {label}:")


def truncate_rows(
    rows: List[List[str]],
    headers: List[str],
    caps: Dict[str, int],
) -> List[List[str]]:
    """Return a copy of *rows* with overly long cells truncated."""
    out: List[List[str]] = []
    for row in rows:
        new_row = []
        for i, cell in enumerate(row):
            limit = caps.get(headers[i])
            if limit and len(cell) > limit:
                new_row.append(cell[: limit - 1] + "…")
            else:
                new_row.append(cell)
        out.append(new_row)
    return out


def _fmt(value: float) -> str:
    return f"{value:g}" if isinstance(value, (int, float)) else str(value)


def display_patients(patients: List[PatientEntry]) -> None:
    """Print one line per roster entry with its plan-check count."""
    _echo_count("patient", len(patients))
    if not patients:
        return
    headers = ["ID", "Patient", "Plans"]
    rows = [[p.patient_id, p.patient_name, str(len(p.plans))] for p in patients]
    tp.table(truncate_rows(rows, headers, COL_CAPS), headers=headers, out=sys.stdout)


def display_match(match: PlanCheckMatch) -> None:
    """Print the key facts of a single-result search."""
    sub = match.submission
    click.echo(f"Patient: {match.patient.patient_id} {match.patient.patient_name}")
    click.echo(f"Plan:    {sub.notes}")
    click.echo(f"Status:  {sub.status}")
    click.echo(f"CID:     {sub.request_cid}")


def display_results(table: ResultTable) -> None:
    """Render a query result as an ASCII table of the most used columns."""
    _echo_count("plan check", len(table))
    if not len(table):
        return
    headers = ["Patient", "Plan", "Machine", "Limit set", "Beams", "Fx", "Gamma %"]
    rows = [
        [
            r.patient_id,
            r.plan_name,
            r.machine,
            r.limit_set,
            str(r.num_beams),
            str(r.num_fractions),
            _fmt(r.gamma_pass),
        ]
        for r in table
    ]
    tp.table(truncate_rows(rows, headers, COL_CAPS), headers=headers, out=sys.stdout)


def display_dvh(series: List[DVHSeries]) -> None:
    """Print each DVH series name with its sample count and dose range."""
    _echo_count("DVH curve", len(series))
    if not series:
        return
    headers = ["ROI", "Samples", "Max dose"]
    rows = [
        [s.name, str(len(s)), _fmt(max((d for d, _ in s.points), default=0))]
        for s in series
    ]
    tp.table(rows, headers=headers, out=sys.stdout)
