"""Retrieve the patient roster (patients with their plan-check submissions).

The server sorts the roster by submission date, newest first, and this order
is kept untouched.  Both search engines rely on it: "keep the first
occurrence" is the same as "keep the newest" only as long as nobody reorders
the list.
"""

from __future__ import annotations

import logging
import time
from typing import List

from .api.client import MobiusClient
from .models import PatientEntry

logger = logging.getLogger(__name__)


def fetch_patient_list(client: MobiusClient) -> List[PatientEntry]:
    """Return every roster entry in server order.

    Entries that are not JSON objects are dropped.

    Raises:
        MobiusConnectionError: On transport failure or a response without a
            ``patients`` list.
    """
    start = time.perf_counter()
    raw = client.fetch_roster()
    patients = [PatientEntry.from_dict(entry) for entry in raw if isinstance(entry, dict)]

    logger.info(
        "Patient list retrieved successfully containing %i entries in %0.3f seconds",
        len(patients),
        time.perf_counter() - start,
    )
    return patients
