"""Plan-check DVH retrieval.

Mobius3D stores the DVH curves it computed for a plan check as an attachment
named ``dvhChart_data.json``.  The document looks like::

    {"data": [{"name": "PTV_70", "data": [[0.0, 100.0], [0.5, 99.8], ...]},
              ...]}

Each named series becomes a :class:`~mobius_query.models.DVHSeries`.
"""

from __future__ import annotations

import json
import logging
import time
from typing import List, Optional, Union

from .api.client import MobiusClient
from .errors import MissingInputError, ParseError
from .models import DVHSeries, PlanCheckMatch
from .payload import PayloadNode

logger = logging.getLogger(__name__)


def parse_dvh(text: Union[str, bytes], cid: Optional[str] = None) -> List[DVHSeries]:
    """Decode a DVH chart document into named series.

    Samples that are not ``[dose, volume]`` pairs are dropped; series without a
    name are skipped.

    Raises:
        ParseError: When the document is not JSON or has no ``data`` list.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    try:
        decoded = json.loads(text)
    except ValueError as exc:
        raise ParseError(f"Could not parse the DVH data for plan cid {cid}", cid) from exc

    series_list = PayloadNode(decoded)["data"]
    if not isinstance(series_list.raw, list):
        raise ParseError(f"DVH document for plan cid {cid} has no data list", cid)

    out: List[DVHSeries] = []
    for series in series_list.values():
        name = series["name"].text(None)
        if name is None:
            continue
        points = []
        for sample in series["data"].values():
            pair = sample.numbers()
            if len(sample) == 2 and len(pair) == 2:
                points.append((pair[0], pair[1]))
        out.append(DVHSeries(name, tuple(points)))
    return out


def select_series(series: List[DVHSeries], name: str) -> Optional[DVHSeries]:
    """Return the series whose name equals *name* exactly, else ``None``."""
    return next((s for s in series if s.name == name), None)


def _resolve_cid(check: Union[PlanCheckMatch, PayloadNode, dict, None]) -> str:
    if check is None:
        return ""
    if isinstance(check, PlanCheckMatch):
        return check.cid
    node = check if isinstance(check, PayloadNode) else PayloadNode(check)
    return node.at("request", "_id").text("")


def get_plan_check_dvh(
    client: MobiusClient,
    *,
    check: Union[PlanCheckMatch, PayloadNode, dict, None] = None,
    cid: Optional[str] = None,
) -> List[DVHSeries]:
    """Retrieve the DVH curves of one plan check.

    Args:
        client: Authenticated client.
        check: A match from :func:`~mobius_query.matcher.match_plan_check` or
            a detail document; its ``request._id`` supplies the cid.
        cid: Request CID given directly; wins over *check*.

    Raises:
        MissingInputError: When neither *check* nor *cid* yields a cid.
        ParseError: When the returned document cannot be decoded.
        MobiusConnectionError: On transport failures.
    """
    cid = cid or _resolve_cid(check)
    if not cid:
        raise MissingInputError(
            "Either a plan check JSON structure or plan check CID must be provided"
        )

    logger.info("Retrieving DVH for plan check request CID %s", cid)
    start = time.perf_counter()
    series = parse_dvh(client.fetch_dvh(cid), cid)
    logger.info("DVH retrieved in %0.3f seconds", time.perf_counter() - start)
    return series
