"""
Safe navigation over schema-less plan-check documents.

Plan-check details are deeply nested JSON documents whose sub-trees appear or
vanish depending on the plan, the server version and how far the computation
got.  :class:`PayloadNode` wraps any decoded JSON value and makes every lookup
total: indexing a missing key, indexing into a scalar or walking past ``null``
yields an *absent* node instead of raising.  Callers decide at the leaves what
an absent value means (fail a predicate, or fall back to a default).

The module also hosts the payload sanitizer.  Older Mobius3D releases serialise
some result dictionaries with composite tuple keys, e.g.::

    "couchable:key:tuple:('dvhLimit_result', 'roi_num2dvh_dict', 3)"

Those keys are long enough to break several JSON consumers.  The sanitizer
folds the known prefixes down to ``couchable`` before decoding.  It is a
compatibility shim and is kept separate from any filtering logic; nothing in
the package reads the folded keys.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Iterator, Sequence, Tuple

from .errors import ParseError

logger = logging.getLogger(__name__)

# Literal (not regex) substitutions applied to raw detail payloads, in order.
KEY_FOLDS: Tuple[Tuple[str, str], ...] = (
    ("couchable:key:tuple:('dvhLimit_result', 'roi_num2dvh_dict', ", "couchable"),
    ("couchable:key:tuple:('strayVoxel_result', 'roi_num2strayVoxel_dict', ", "couchable"),
    (
        "couchable:key:tuple:('targetCoverage_result', 'roi_num2targetCoverage_dict', ",
        "couchable",
    ),
)


class _Absent:
    """Singleton marker for a value that is not present in the payload."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class PayloadNode:
    """Optional-field view of one position inside a decoded JSON document."""

    __slots__ = ("_value",)

    def __init__(self, value: Any = ABSENT) -> None:
        self._value = value

    def __repr__(self) -> str:
        return f"PayloadNode({self._value!r})"

    # ------------------------------------------------------------------ #
    # Navigation                                                         #
    # ------------------------------------------------------------------ #
    def __getitem__(self, key: Any) -> "PayloadNode":
        value = self._value
        if isinstance(value, dict):
            return PayloadNode(value.get(key, ABSENT))
        if isinstance(value, list) and isinstance(key, int):
            try:
                return PayloadNode(value[key])
            except IndexError:
                return PayloadNode()
        return PayloadNode()

    def at(self, *keys: Any) -> "PayloadNode":
        """Follow *keys* one after the other."""
        node = self
        for key in keys:
            node = node[key]
        return node

    def items(self) -> Iterator[Tuple[Any, "PayloadNode"]]:
        """Yield ``(key, child)`` pairs for mappings, ``(index, child)`` for lists."""
        value = self._value
        if isinstance(value, dict):
            for key, child in value.items():
                yield key, PayloadNode(child)
        elif isinstance(value, list):
            for index, child in enumerate(value):
                yield index, PayloadNode(child)

    def values(self) -> Iterator["PayloadNode"]:
        for _, child in self.items():
            yield child

    def first(self) -> "PayloadNode":
        """Return the first child in document order, absent when empty."""
        for child in self.values():
            return child
        return PayloadNode()

    def __len__(self) -> int:
        value = self._value
        if isinstance(value, (dict, list)):
            return len(value)
        return 0

    # ------------------------------------------------------------------ #
    # Leaf access                                                        #
    # ------------------------------------------------------------------ #
    @property
    def present(self) -> bool:
        """``True`` unless the value is missing or JSON ``null``."""
        return self._value is not ABSENT and self._value is not None

    @property
    def raw(self) -> Any:
        return self._value

    def value(self, default: Any = None) -> Any:
        return self._value if self.present else default

    def text(self, default: str | None = "") -> str | None:
        """Return a string leaf; numbers are rendered, containers are absent."""
        value = self._value
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return default

    def number(self, default: float | None = 0) -> float | None:
        """Return a finite numeric leaf; numeric strings are converted.

        NaN and infinities (JSON ``NaN``/``Infinity`` or strings such as ``"inf"``)
        count as absent.
        """
        value = self._value
        if isinstance(value, bool):
            return default
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                return default
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return value if math.isfinite(value) else default
        return default

    def numbers(self, fill: float | None = None) -> list:
        """Return the numeric members of a list leaf.

        Other members are dropped, or replaced by *fill* when it is given so
        that positions are kept.
        """
        out = []
        for child in self.values():
            num = child.number(fill)
            if num is not None:
                out.append(num)
        return out


# --------------------------------------------------------------------------- #
# Sanitising and decoding                                                     #
# --------------------------------------------------------------------------- #
def sanitize_payload(text: str, folds: Sequence[Tuple[str, str]] = KEY_FOLDS) -> str:
    """Apply the literal key folds in *folds* to a raw detail payload."""
    for old, new in folds:
        text = text.replace(old, new)
    return text


def parse_check_detail(text: str | bytes, cid: str | None = None) -> PayloadNode:
    """Sanitise and decode a plan-check detail document.

    Raises:
        ParseError: When the payload is not JSON or its top level is not an
            object.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    try:
        decoded = json.loads(sanitize_payload(text))
    except ValueError as exc:
        raise ParseError(f"JSON decode error occurred for plan cid {cid}", cid) from exc

    if not isinstance(decoded, dict):
        raise ParseError(f"Unexpected plan check document for plan cid {cid}", cid)
    return PayloadNode(decoded)
