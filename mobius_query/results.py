"""
Result rows and the append-only table that collects them.

:func:`build_row` flattens one plan check into a
:class:`~mobius_query.models.ResultRow`.  Every field is looked up on its own;
a missing sub-tree only blanks the fields that live in it, so a row is always
produced.  The column layout of :class:`ResultTable` is fixed by the row
definition and does not depend on which criteria were used.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, Iterable, Iterator, List, Optional

import pandas as pd

from .filters import beams, fraction_groups, limit_set_name, machine_name
from .models import DVHSeries, PatientEntry, PlanSubmission, ResultRow
from .payload import PayloadNode

logger = logging.getLogger(__name__)

# Task-timing key of the dose computation step.
DOSE_TASK_KEY = "mms_worker_task_compute_dose_ComputeDicomDose"


def _version(detail: PayloadNode) -> str:
    node = detail["version"]
    if isinstance(node.raw, list):
        return node[-1].text("")
    return node.text("")


def _gamma_histogram(gamma: PayloadNode) -> tuple:
    """Pair each bin edge with its count; the last edge gets a count of 0.

    Non-numeric members read as 0 so that edges and counts stay aligned.
    """
    edges = gamma.at("histogram", "histEdge_list").numbers(fill=0)
    counts = gamma.at("histogram", "histCount_list").numbers(fill=0) + [0]
    return tuple(zip(edges, counts))


def _num_fractions(detail: PayloadNode) -> int:
    total = 0
    for group in fraction_groups(detail):
        try:
            total += int(group["NumberofFractionsPlanned"].number(0))
        except (OverflowError, ValueError):
            continue
    return total


def build_row(
    patient: PatientEntry,
    submission: PlanSubmission,
    detail: PayloadNode,
    *,
    roi: Optional[PayloadNode] = None,
    dvh: Optional[DVHSeries] = None,
) -> ResultRow:
    """Return the reporting row for one accepted plan check."""
    data = detail["data"]
    tps = data["treatmentPlanningSystem_info"]
    gamma = data["gamma_summary"]

    row: Dict[str, Any] = {
        "patient_id": patient.patient_id,
        "plan_name": submission.notes,
        "timestamp": detail.at("request", "planReceived_timestamp").value(""),
        "limit_set": limit_set_name(detail) or "",
        "machine": machine_name(detail) or "",
        "version": _version(detail),
        "tps_name": tps["planningSystemName_str"].text(""),
        "tps_version": tps["softwareVersion_str"].text(""),
        "patient_position": data.at("ct_info", "patientPosition").text(""),
        "dose_calc_time": detail.at(
            "request", "taskProc_dict", DOSE_TASK_KEY, "elapsed_time"
        ).number(0),
        "gamma_dose": gamma.at("criteria", "dose", "value").number(0),
        "gamma_dta": gamma.at("criteria", "maxDTA_mm", "value").number(0),
        "gamma_hist": _gamma_histogram(gamma),
        "gamma_pass": gamma.at("passingRate", "value").number(0),
        "stray_voxels": data.at("strayVoxel_result", "orig_result").text("ok"),
        "num_fractions": _num_fractions(detail),
        "num_beams": len(beams(detail)),
    }

    if roi is not None:
        row["struct_name"] = roi["ROIName"].text("")
        row["struct_volume"] = roi.at("volume", "value").number(0)
    if dvh is not None:
        row["struct_dvh"] = dvh.points

    return ResultRow(**row)


class ResultTable:
    """Append-only, ordered collection of :class:`ResultRow` objects."""

    columns = ResultRow.column_names()

    def __init__(self, rows: Iterable[ResultRow] = ()) -> None:
        self._rows: List[ResultRow] = []
        for row in rows:
            self.append(row)

    def __repr__(self) -> str:
        return f"ResultTable({len(self._rows)} rows)"

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[ResultRow]:
        return iter(self._rows)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._rows[index])
        return self._rows[index]

    def append(self, row: ResultRow) -> None:
        if not isinstance(row, ResultRow):
            raise TypeError(f"ResultTable only accepts ResultRow, got {type(row).__name__}")
        self._rows.append(row)

    @property
    def rows(self) -> tuple:
        return tuple(self._rows)

    def to_records(self) -> List[Dict[str, Any]]:
        return [asdict(row) for row in self._rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Return the rows as a :class:`pandas.DataFrame` with fixed columns."""
        return pd.DataFrame(self.to_records(), columns=list(self.columns))

    def to_csv(self, path) -> None:
        """Write the table as CSV; histogram and DVH cells hold JSON arrays."""
        frame = self.to_dataframe()
        for col in ("gamma_hist", "struct_dvh"):
            frame[col] = frame[col].map(lambda pairs: json.dumps([list(p) for p in pairs]))
        frame.to_csv(path, index=False)
        logger.info("Wrote %d rows to %s", len(frame), path)

    def to_json(self, path) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.to_records(), fh, indent=2)
        logger.info("Wrote %d rows to %s", len(self._rows), path)
