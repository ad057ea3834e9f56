"""
Bulk search across the whole plan-check roster.

Each submission walks through the same short-circuiting pipeline::

    status check ─► duplicate check ─► plan-name prefilter ─► detail fetch
        ─► sanitise/parse ─► record filter ─► row build ─► optional DVH

The cheap roster-level checks run before any request.  Only the first
occurrence of a ``(patient_id, notes)`` pair is considered; since the roster is
newest-first that is the newest plan check of that name.  The pair is recorded
as soon as it is seen, so an older duplicate is skipped even when the newer
one was rejected by a later stage.

Per-record problems (an unparsable detail or DVH document) are logged and the
record is skipped.  Transport failures propagate and abort the query.
Requests are issued one at a time; a ``cancel`` object with an ``is_set()``
method (e.g. :class:`threading.Event`) is polled before each roster entry and
between submissions.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Protocol, Set, Tuple

from .api.client import MobiusClient
from .dvh import parse_dvh, select_series
from .errors import ParseError
from .filters import evaluate, match_plan_name, validate_criteria
from .models import PatientEntry, PlanSubmission, QueryCriteria, QueryResult
from .payload import parse_check_detail
from .results import ResultTable, build_row
from .roster import fetch_patient_list

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


def _process_submission(
    client: MobiusClient,
    patient: PatientEntry,
    sub: PlanSubmission,
    criteria: QueryCriteria,
    table: ResultTable,
) -> None:
    """Run the detail-level stages for one candidate and append its row."""
    cid = sub.request_cid
    try:
        detail = parse_check_detail(client.fetch_check_detail(cid), cid)
    except ParseError as exc:
        logger.warning("%s", exc)
        return

    outcome = evaluate(detail, criteria)
    if not outcome:
        logger.debug("Plan cid %s rejected by %s criterion", cid, outcome.failed)
        return

    series = None
    if outcome.roi is not None:
        roi_name = outcome.roi["ROIName"].text("")
        try:
            series = select_series(parse_dvh(client.fetch_dvh(cid), cid), roi_name)
        except ParseError as exc:
            logger.warning("%s", exc)
            return
        if series is None:
            logger.debug("No DVH named %r for plan cid %s", roi_name, cid)

    table.append(build_row(patient, sub, detail, roi=outcome.roi, dvh=series))


def query_plan_checks(
    client: MobiusClient,
    roster: Optional[List[PatientEntry]] = None,
    criteria: Optional[QueryCriteria] = None,
    *,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    **criteria_kwargs,
) -> QueryResult:
    """Return one row per matching, newest plan check.

    Criteria may be passed as a :class:`QueryCriteria` or as keyword
    arguments (``machine``, ``plan_name``, ``rotation``, ``mlc``, ``energy``,
    ``limit_set``, ``structure``); each takes a single pattern or a list of
    alternatives.

    Args:
        client: Authenticated client.
        roster: Pre-fetched roster; fetched when omitted.
        criteria: Search criteria object.
        progress: Called with the percentage of roster entries scanned.
        cancel: Polled before each roster entry and submission; when set, the rows gathered so far
            are returned with ``cancelled=True``.

    Returns:
        :class:`QueryResult` with the table and elapsed seconds.

    Raises:
        InvalidCriterionError: For an unusable pattern, before any request.
        pydantic.ValidationError: For an unknown criterion keyword.
        MobiusConnectionError: On transport failures.
    """
    if criteria is None:
        criteria = QueryCriteria(**criteria_kwargs)
    elif criteria_kwargs:
        merged = {name: getattr(criteria, name) for name in QueryCriteria.model_fields}
        merged.update(criteria_kwargs)
        criteria = QueryCriteria(**merged)
    validate_criteria(criteria)

    start = time.perf_counter()
    if roster is None:
        logger.info("Retrieving patient list")
        roster = fetch_patient_list(client)

    table = ResultTable()
    processed: Set[Tuple[str, str]] = set()
    total = len(roster)
    cancelled = False
    scanned = 0

    for index, patient in enumerate(roster, start=1):
        if cancel is not None and cancel.is_set():
            cancelled = True
            break

        for sub in patient.plans:
            if cancel is not None and cancel.is_set():
                cancelled = True
                break

            if not sub.eligible:
                continue

            key = (patient.patient_id, sub.notes)
            if key in processed:
                continue
            processed.add(key)

            if not match_plan_name(sub.notes, criteria.plan_name):
                continue

            _process_submission(client, patient, sub, criteria, table)

        if cancelled:
            break
        scanned = index
        if progress is not None:
            progress(scanned / total * 100 if total else 100.0)

    elapsed = time.perf_counter() - start
    if cancelled:
        logger.warning(
            "Query cancelled after %i of %i roster entries; %i plans matched",
            scanned,
            total,
            len(table),
        )
    else:
        logger.info(
            "%i plans matched search criteria in %0.3f seconds", len(table), elapsed
        )
    return QueryResult(table, elapsed, cancelled=cancelled, scanned=scanned)
