"""
Session-management helpers for authenticating against a Mobius3D server.

Mobius3D uses cookie-based sessions: a username/password POST to
``/auth/login`` stores a session cookie on the :class:`requests.Session`,
after which every GET is authenticated.  This module hides that handshake so
that the rest of the package only ever sees a ready
:class:`~mobius_query.api.client.MobiusClient`.

Public helpers
--------------
create_session
    Log in and verify the connection with a one-entry roster request.
connect
    Build a client from :class:`~mobius_query.api.config_loaders.MobiusSettings`.

Missing credentials raise :class:`MobiusAuthError`.  Network-level issues and
rejected logins surface as :class:`MobiusConnectionError`.
"""

from __future__ import annotations

import logging
import time

import requests

from ..errors import MobiusAuthError, MobiusConnectionError
from .client import MobiusClient, normalize_base_url
from .config_loaders import MobiusSettings

logger = logging.getLogger(__name__)


def create_session(
    server: str,
    username: str,
    password: str,
    *,
    timeout: float | None = None,
    roster_limit: int | None = None,
) -> MobiusClient:
    """Return a :class:`MobiusClient` holding an authenticated session.

    Args:
        server: Server host/IP or base URL.
        username: Mobius3D username.
        password: Mobius3D password.
        timeout: Per-request timeout in seconds.
        roster_limit: Default ``limit`` for roster requests.

    Raises:
        MobiusAuthError: If *server*, *username* or *password* is empty.
        MobiusConnectionError: If login or the verification request fails.
    """
    if not (server and username and password):
        raise MobiusAuthError(
            "Server information is missing. You must provide server, "
            "username, and password"
        )

    start = time.perf_counter()
    base_url = normalize_base_url(server)
    session = requests.Session()
    kwargs = {"timeout": timeout}
    if roster_limit is not None:
        kwargs["roster_limit"] = roster_limit
    client = MobiusClient(base_url, session, **kwargs)

    try:
        resp = session.post(
            f"{base_url}/auth/login",
            data={"username": username, "password": password},
            timeout=client.request_timeout,
        )
        resp.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise MobiusConnectionError(
            f"The server {server} cannot be reached. Check your network "
            "connection and credentials."
        ) from exc

    # A one-entry roster request proves the session cookie is accepted.
    client.fetch_roster(limit=1)

    logger.info(
        "A connection was successfully established to %s in %0.3f seconds",
        server,
        time.perf_counter() - start,
    )
    return client


def connect(settings: MobiusSettings) -> MobiusClient:
    """Open a session using the values stored in *settings*."""
    return create_session(
        settings.server,
        settings.username,
        settings.password,
        timeout=settings.timeout,
        roster_limit=settings.roster_limit,
    )
