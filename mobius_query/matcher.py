"""
Single-result search: find one plan check for a patient.

The search is keyed on the patient ID plus either the plan name (stored in the
submission's ``notes``) or a date window around the plan's creation time.  Only
the *first* roster entry carrying the patient ID is examined, and only the
first acceptable submission inside it is fetched.  When that submission's
detail cannot be parsed the search ends there: no other submission and no
later roster entry for the same patient is tried.
"""

from __future__ import annotations

import logging
import time
from datetime import date as date_type
from datetime import datetime
from typing import List, Optional, Union

from dateutil import parser as date_parser

from .api.client import MobiusClient
from .errors import MissingInputError, ParseError
from .filters import DateWindow
from .models import PatientEntry, PlanCheckMatch, PlanSubmission
from .payload import parse_check_detail
from .roster import fetch_patient_list

logger = logging.getLogger(__name__)

DateLike = Union[datetime, date_type, str]


def _coerce_date(value: DateLike) -> datetime:
    if isinstance(value, (datetime, date_type)):
        return value
    try:
        return date_parser.parse(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MissingInputError(f"Could not interpret date {value!r}") from exc


def _submission_matches(
    sub: PlanSubmission,
    plan_name: Optional[str],
    window: Optional[DateWindow],
) -> bool:
    if plan_name and sub.notes.casefold() == plan_name.casefold():
        return True
    return window is not None and window.contains(sub.created_timestamp)


def match_plan_check(
    client: MobiusClient,
    patient_id: Optional[str],
    *,
    plan_name: Optional[str] = None,
    date: Optional[DateLike] = None,
    range_hours: float = 72,
    utc_offset: float = -5,
    inclusive: bool = False,
    roster: Optional[List[PatientEntry]] = None,
) -> Optional[PlanCheckMatch]:
    """Return the plan check for *patient_id* matching a name or a date.

    Args:
        client: Authenticated client.
        patient_id: Patient ID; required.
        plan_name: Plan check name, compared case-insensitively and exactly.
        date: Target date (server-local when naive); ISO strings are accepted.
        range_hours: Half-width of the date window.
        utc_offset: Server's UTC offset in hours.
        inclusive: Accept plans lying exactly on a window boundary.
        roster: Pre-fetched roster; fetched when omitted.

    Returns:
        The match, or ``None`` when nothing was found or the detail document
        could not be parsed.

    Raises:
        MissingInputError: Without a patient ID, or with neither a plan name
            nor a date.  Raised before any request is sent.
        MobiusConnectionError: On transport failures.
    """
    if not patient_id or (not plan_name and date is None):
        raise MissingInputError(
            "A patient ID and either a plan or date must be provided to search on"
        )
    patient_id = str(patient_id)

    window = None
    if date is not None:
        window = DateWindow(
            _coerce_date(date),
            range_hours=range_hours,
            utc_offset=utc_offset,
            inclusive=inclusive,
        )

    start = time.perf_counter()
    if plan_name:
        logger.info("Searching Mobius3D for patient %s plan %s", patient_id, plan_name)
    else:
        logger.info("Searching Mobius3D for patient %s around date %s", patient_id, window.target)

    if roster is None:
        roster = fetch_patient_list(client)

    patient = next((p for p in roster if p.patient_id and p.patient_id == patient_id), None)
    if patient is not None:
        for sub in patient.plans:
            if not sub.eligible or not sub.has_results:
                continue
            if not _submission_matches(sub, plan_name, window):
                continue

            logger.info("Plan check found, retrieving JSON results")
            raw = client.fetch_check_detail(sub.request_cid)
            try:
                detail = parse_check_detail(raw, sub.request_cid)
            except ParseError as exc:
                logger.error("%s", exc)
                break

            if len(detail):
                logger.info(
                    "JSON plan check was found, cid %s, in %0.3f seconds",
                    sub.request_cid,
                    time.perf_counter() - start,
                )
                return PlanCheckMatch(patient, sub, detail)
            break

    logger.warning("JSON plan check data was not found")
    return None
