"""
Record filter: pure predicates over one plan-check detail document.

Every predicate takes a :class:`~mobius_query.payload.PayloadNode` (the parsed
detail) and a :data:`~mobius_query.models.Criterion`.  Text criteria are
case-insensitive regular expressions matched anywhere in the target field
(``re.search``); alternatives in an :class:`~mobius_query.models.AnyOf` are
ORed.  A missing target field makes the predicate fail; it never raises.

:func:`evaluate` ANDs every criterion that is set, in a fixed order, and stops
at the first failure.  A matched structure is returned with the outcome so
that the row builder can reuse the ROI for its volume and DVH.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from .errors import InvalidCriterionError
from .models import Criterion, QueryCriteria
from .payload import PayloadNode

_EPOCH = datetime(1970, 1, 1)


# --------------------------------------------------------------------------- #
# Criterion validation                                                        #
# --------------------------------------------------------------------------- #
def validate_criteria(criteria: QueryCriteria) -> None:
    """Reject unusable patterns before any request is sent.

    Raises:
        InvalidCriterionError: For an invalid regular expression or a
            non-numeric energy.
    """
    for name in type(criteria).model_fields:
        criterion = getattr(criteria, name)
        if criterion is None:
            continue
        for alt in criterion.alternatives:
            if name == "energy":
                if _as_float(alt) is None:
                    raise InvalidCriterionError(f"Energy must be numeric, got {alt!r}")
                continue
            try:
                re.compile(str(alt), re.IGNORECASE)
            except re.error as exc:
                raise InvalidCriterionError(f"Invalid {name} pattern {alt!r}: {exc}") from exc


def _as_float(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# --------------------------------------------------------------------------- #
# Generic matchers                                                            #
# --------------------------------------------------------------------------- #
def text_matches(value: Optional[str], criterion: Criterion) -> bool:
    """Return ``True`` when any alternative is found in *value*.

    ``None`` (an absent field) never matches.
    """
    if value is None:
        return False
    return any(
        re.search(str(alt), value, re.IGNORECASE) is not None
        for alt in criterion.alternatives
    )


def _any_text_matches(values: Iterable[Optional[str]], criterion: Criterion) -> bool:
    return any(text_matches(v, criterion) for v in values)


def beams(detail: PayloadNode) -> list[PayloadNode]:
    """Return every beam entry, whatever its (non-contiguous) key."""
    return list(detail.at("data", "beam_info", "beam_num2info_dict").values())


def fraction_groups(detail: PayloadNode) -> list[PayloadNode]:
    return list(detail.at("data", "fractionGroup_info", "fractionGroup_num2info_dict").values())


def rois(detail: PayloadNode) -> list[PayloadNode]:
    return list(detail.at("data", "roiInfo_data", "roi_num2basic_dict").values())


def machine_name(detail: PayloadNode) -> Optional[str]:
    """Treatment machine of the first fraction group in document order."""
    groups = fraction_groups(detail)
    if not groups:
        return None
    return groups[0]["TreatmentMachineName"].text(None)


def limit_set_name(detail: PayloadNode) -> Optional[str]:
    return detail.at("data", "limitSet_data", "humanReadableLimitSet_str").text(None)


# --------------------------------------------------------------------------- #
# Criterion predicates                                                        #
# --------------------------------------------------------------------------- #
def match_plan_name(notes: str, criterion: Optional[Criterion]) -> bool:
    """Cheap roster-level check run before any detail is fetched."""
    return criterion is None or text_matches(notes, criterion)


def match_machine(detail: PayloadNode, criterion: Criterion) -> bool:
    return text_matches(machine_name(detail), criterion)


def match_limit_set(detail: PayloadNode, criterion: Criterion) -> bool:
    return text_matches(limit_set_name(detail), criterion)


def match_rotation(detail: PayloadNode, criterion: Criterion) -> bool:
    return _any_text_matches(
        (b["rotationType_str"].text(None) for b in beams(detail)), criterion
    )


def match_mlc(detail: PayloadNode, criterion: Criterion) -> bool:
    return _any_text_matches((b["mlcType_str"].text(None) for b in beams(detail)), criterion)


def match_energy(detail: PayloadNode, criterion: Criterion) -> bool:
    """Pass when at least one beam energy equals one of the alternatives."""
    wanted = [v for v in (_as_float(alt) for alt in criterion.alternatives) if v is not None]
    for beam in beams(detail):
        energy = beam.at("energy", "value").number(None)
        if energy is None:
            continue
        if any(math.isclose(energy, w, rel_tol=0, abs_tol=1e-9) for w in wanted):
            return True
    return False


def find_structure(detail: PayloadNode, criterion: Criterion) -> Optional[PayloadNode]:
    """Return the first ROI whose ``ROIName`` matches, or ``None``."""
    for roi in rois(detail):
        if text_matches(roi["ROIName"].text(None), criterion):
            return roi
    return None


# --------------------------------------------------------------------------- #
# Combined evaluation                                                         #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class FilterOutcome:
    """Verdict of :func:`evaluate`; *roi* is set when a structure matched."""

    accepted: bool
    roi: Optional[PayloadNode] = None
    failed: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


_DETAIL_PREDICATES = (
    ("machine", match_machine),
    ("limit_set", match_limit_set),
    ("rotation", match_rotation),
    ("mlc", match_mlc),
    ("energy", match_energy),
)


def evaluate(detail: PayloadNode, criteria: QueryCriteria) -> FilterOutcome:
    """AND every detail-level criterion in *criteria*.

    ``plan_name`` is not evaluated here; it is a roster-level criterion that
    the query engine applies before fetching the detail.
    """
    for name, predicate in _DETAIL_PREDICATES:
        criterion = getattr(criteria, name)
        if criterion is not None and not predicate(detail, criterion):
            return FilterOutcome(False, failed=name)

    if criteria.structure is None:
        return FilterOutcome(True)

    roi = find_structure(detail, criteria.structure)
    if roi is None:
        return FilterOutcome(False, failed="structure")
    return FilterOutcome(True, roi=roi)


# --------------------------------------------------------------------------- #
# Date window                                                                 #
# --------------------------------------------------------------------------- #
def local_datetime(created_timestamp: float, utc_offset: float) -> datetime:
    """Convert epoch seconds to naive server-local time."""
    return _EPOCH + timedelta(seconds=created_timestamp, hours=utc_offset)


@dataclass(frozen=True)
class DateWindow:
    """Accept submissions created within *range_hours* of *target*.

    *target* is interpreted as server-local time when naive; aware datetimes
    are converted with *utc_offset*.  Whether the two boundaries themselves are
    accepted is controlled by *inclusive*.
    """

    target: datetime
    range_hours: float = 72
    utc_offset: float = -5
    inclusive: bool = False

    def __post_init__(self) -> None:
        target = self.target
        if isinstance(target, date) and not isinstance(target, datetime):
            target = datetime(target.year, target.month, target.day)
        elif target.tzinfo is not None:
            target = target.astimezone(timezone.utc).replace(tzinfo=None) + timedelta(
                hours=self.utc_offset
            )
        object.__setattr__(self, "target", target)

    @property
    def start(self) -> datetime:
        return self.target - timedelta(hours=self.range_hours)

    @property
    def end(self) -> datetime:
        return self.target + timedelta(hours=self.range_hours)

    def contains(self, created_timestamp: float) -> bool:
        try:
            when = local_datetime(created_timestamp, self.utc_offset)
        except (OverflowError, ValueError):
            # e.g. a millisecond epoch
            return False
        if self.inclusive:
            return self.start <= when <= self.end
        return self.start < when < self.end
