"""
Public interface for *mobius_query*.

The package searches the plan-check archive of a Mobius3D QA server.  The
most commonly used entry points are re-exported here::

    from mobius_query import connect, match_plan_check, query_plan_checks

The :data:`__version__` attribute is derived from the wheel metadata at
runtime; ``pyproject.toml`` holds the only authoritative version string.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

try:                           # installed (editable or regular)
    __version__ = _pkg_version("mobius_query")
except PackageNotFoundError:   # running from a git checkout without `pip install -e .`
    __version__ = "0.0.0.dev0"

del _pkg_version, PackageNotFoundError

from .api.client import MobiusClient  # noqa: E402
from .api.session import connect, create_session  # noqa: E402
from .dvh import get_plan_check_dvh  # noqa: E402
from .errors import (  # noqa: E402
    MissingInputError,
    MobiusConnectionError,
    ParseError,
)
from .matcher import match_plan_check  # noqa: E402
from .models import AnyOf, QueryCriteria, Single  # noqa: E402
from .query import query_plan_checks  # noqa: E402
from .roster import fetch_patient_list  # noqa: E402

__all__ = [
    "AnyOf",
    "MissingInputError",
    "MobiusClient",
    "MobiusConnectionError",
    "ParseError",
    "QueryCriteria",
    "Single",
    "__version__",
    "connect",
    "create_session",
    "fetch_patient_list",
    "get_plan_check_dvh",
    "match_plan_check",
    "query_plan_checks",
]
