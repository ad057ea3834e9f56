"""
Core data-model declarations for *mobius_query*.

The module centralises the containers passed between the roster fetcher, the
record filter, the matcher and the query engine.  Roster records are built
from loosely-typed server dictionaries through ``from_dict`` constructors that
tolerate missing keys; result rows are frozen once built.

Search criteria accept either one pattern or a list of alternatives.  Both
shapes are normalised into the tagged union :data:`Criterion`
(:class:`Single` | :class:`AnyOf`) so that a single evaluator handles them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

from .payload import PayloadNode

if TYPE_CHECKING:
    from .results import ResultTable

# Plan checks in these states never carry usable results.
INELIGIBLE_STATUSES = frozenset({"waiting", "error", "critical"})


# --------------------------------------------------------------------------- #
# Criteria                                                                    #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class Single:
    """Exactly one pattern (or numeric value for energy)."""

    pattern: Any

    @property
    def alternatives(self) -> Tuple[Any, ...]:
        return (self.pattern,)


@dataclass(frozen=True)
class AnyOf:
    """Alternative patterns; the criterion holds when any of them matches."""

    patterns: Tuple[Any, ...]

    @property
    def alternatives(self) -> Tuple[Any, ...]:
        return self.patterns


Criterion = Union[Single, AnyOf]


def as_criterion(value: Any) -> Optional[Criterion]:
    """Normalise a scalar, a list/tuple or an existing criterion.

    ``None`` and empty strings/lists mean "criterion not set".
    """
    if value is None or isinstance(value, (Single, AnyOf)):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        items = tuple(v for v in value if v is not None and v != "")
        if not items:
            return None
        return AnyOf(items)
    if value == "":
        return None
    return Single(value)


class QueryCriteria(BaseModel):
    """Optional bulk-search criteria; every supplied criterion must hold."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    machine: Optional[Criterion] = None
    plan_name: Optional[Criterion] = None
    rotation: Optional[Criterion] = None
    mlc: Optional[Criterion] = None
    energy: Optional[Criterion] = None
    limit_set: Optional[Criterion] = None
    structure: Optional[Criterion] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_shape(cls, value: Any) -> Optional[Criterion]:
        return as_criterion(value)

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


# --------------------------------------------------------------------------- #
# Roster records                                                              #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class PlanSubmission:
    """One plan-check request listed under a patient in the roster."""

    notes: str
    created_timestamp: float
    status: str
    request_cid: str
    has_results: bool

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PlanSubmission":
        node = PayloadNode(raw)
        results = node["results"]
        return cls(
            notes=node["notes"].text(""),
            created_timestamp=node["created_timestamp"].number(0),
            status=node["status"].text(""),
            request_cid=node["request_cid"].text(""),
            has_results=results.present and results.raw not in ("", [], {}),
        )

    @property
    def eligible(self) -> bool:
        """``False`` for waiting, error and critical submissions."""
        return self.status.lower() not in INELIGIBLE_STATUSES


@dataclass(frozen=True)
class PatientEntry:
    """Roster entry: one patient and their submissions, newest first."""

    patient_id: str
    patient_name: str
    css_id: str
    plans: Tuple[PlanSubmission, ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PatientEntry":
        node = PayloadNode(raw)
        plans = tuple(
            PlanSubmission.from_dict(child.raw)
            for child in node["plans"].values()
            if isinstance(child.raw, dict)
        )
        return cls(
            patient_id=node["patientId"].text(""),
            patient_name=node["patientName"].text(""),
            css_id=node["cssId"].text(""),
            plans=plans,
        )


# --------------------------------------------------------------------------- #
# Results                                                                     #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class DVHSeries:
    """Dose-volume histogram of one ROI as ``(dose, volume)`` samples."""

    name: str
    points: Tuple[Tuple[float, float], ...] = ()

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class ResultRow:
    """Flat projection of a plan check used for reporting.

    Missing source fields are represented by ``""``, ``0`` or ``()``.
    """

    patient_id: str
    plan_name: str
    timestamp: Any = ""
    limit_set: str = ""
    machine: str = ""
    version: str = ""
    tps_name: str = ""
    tps_version: str = ""
    patient_position: str = ""
    dose_calc_time: float = 0
    gamma_dose: float = 0
    gamma_dta: float = 0
    gamma_hist: Tuple[Tuple[float, float], ...] = ()
    gamma_pass: float = 0
    stray_voxels: str = "ok"
    num_fractions: int = 0
    num_beams: int = 0
    struct_name: str = ""
    struct_volume: float = 0
    struct_dvh: Tuple[Tuple[float, float], ...] = ()

    @classmethod
    def column_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass
class PlanCheckMatch:
    """Outcome of a single-result search."""

    patient: PatientEntry
    submission: PlanSubmission
    detail: PayloadNode = field(repr=False)

    @property
    def cid(self) -> str:
        return self.submission.request_cid


@dataclass
class QueryResult:
    """Rows accepted by a bulk query plus timing information."""

    table: ResultTable
    elapsed: float
    cancelled: bool = False
    scanned: int = 0

    def __len__(self) -> int:
        return len(self.table)

