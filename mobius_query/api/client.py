"""
Light-weight HTTP helpers for reading from the Mobius3D REST API.

Only the mechanics of *sending* a request belong here.  The helpers never
interpret plan-check payloads; detail and DVH documents are handed back as raw
text so that :mod:`mobius_query.payload` can sanitise and parse them.

Every request carries an explicit timeout taken from the constructor, the
``MOBIUS_TIMEOUT`` environment variable or :data:`DEFAULT_TIMEOUT`.  Transport
failures and non-2xx answers are converted into
:class:`~mobius_query.errors.MobiusConnectionError`; no retries are attempted.

Endpoints
---------
``/_plan/list``
    Patient roster with nested plan-check submissions.
``/check/details/<cid>``
    Full plan-check detail document (``?format=json``).
``/check/attachment/<cid>/dvhChart_data.json``
    DVH curves computed for every ROI of a plan check.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, List, Optional

import requests

from ..errors import MobiusConnectionError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_ROSTER_LIMIT = 999999999


def _default_timeout() -> Optional[float]:
    """Return the timeout configured via ``MOBIUS_TIMEOUT`` or ``DEFAULT_TIMEOUT``."""
    env = os.getenv("MOBIUS_TIMEOUT")
    if not env:
        return DEFAULT_TIMEOUT
    try:
        return float(env)
    except ValueError:
        return DEFAULT_TIMEOUT


def normalize_base_url(server: str) -> str:
    """Return *server* as a base URL, defaulting the scheme to ``http://``."""
    server = server.strip().rstrip("/")
    if "://" not in server:
        server = f"http://{server}"
    return server


class MobiusClient:
    """Read-only accessor bound to one authenticated :class:`requests.Session`.

    The client is shared by the roster fetcher, the matcher and the query
    engine.  Requests are strictly sequential; a second thread entering
    :meth:`get` while a request is outstanding gets a :class:`RuntimeError`
    instead of silently interleaving on the same session.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        *,
        timeout: Optional[float] = None,
        roster_limit: int = DEFAULT_ROSTER_LIMIT,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.roster_limit = roster_limit
        self._busy = threading.Lock()

    def __repr__(self) -> str:
        return f"MobiusClient({self.base_url!r})"

    @property
    def request_timeout(self) -> Optional[float]:
        """Timeout applied when a call does not override it."""
        return self.timeout if self.timeout is not None else _default_timeout()

    # ------------------------------------------------------------------
    # Low-level GET
    # ------------------------------------------------------------------
    def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a GET request and return the raw response.

        Args:
            endpoint: Path relative to the base URL (leading slash optional).
            params: Query parameters.
            timeout: Per-call override of the client timeout.

        Returns:
            The :class:`requests.Response` of a 2xx answer.

        Raises:
            MobiusConnectionError: On network errors or a non-2xx status.
            RuntimeError: When the client is already serving another request.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        if timeout is None:
            timeout = self.request_timeout

        if not self._busy.acquire(blocking=False):
            raise RuntimeError("MobiusClient is not safe for concurrent use")
        try:
            resp = self.session.get(url, params=params or {}, timeout=timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise MobiusConnectionError(f"The request to {url} failed: {exc}") from exc
        finally:
            self._busy.release()

        logger.debug("GET %s -> HTTP %s", url, resp.status_code)
        return resp

    # ------------------------------------------------------------------
    # Endpoint helpers
    # ------------------------------------------------------------------
    def fetch_roster(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Return the raw ``patients`` list, newest submission first.

        Raises:
            MobiusConnectionError: On transport failure, undecodable JSON or a
                response lacking the ``patients`` field.
        """
        params = {
            "sort": "date",
            "descending": 1,
            "limit": limit if limit is not None else self.roster_limit,
        }
        resp = self.get("_plan/list", params)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise MobiusConnectionError(
                "An error occurred returning the patient list"
            ) from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("patients"), list):
            raise MobiusConnectionError("An error occurred returning the patient list")
        return payload["patients"]

    def fetch_check_detail(self, cid: str) -> str:
        """Return the undecoded plan-check detail document for *cid*."""
        return self.get(f"check/details/{cid}", {"format": "json"}).text

    def fetch_dvh(self, cid: str) -> str:
        """Return the undecoded DVH chart document for *cid*."""
        return self.get(f"check/attachment/{cid}/dvhChart_data.json").text
