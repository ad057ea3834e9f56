"""
Centralised logger configuration for the ``mobius-query`` command.

Library modules only ever call :func:`logging.getLogger`; the CLI calls
:func:`setup_logging` once so that every sub-command shares the same console
format.  ``urllib3`` logs every connection it opens, which is noise during a
roster scan of several thousand plan checks, so its level is raised to
``WARNING`` unless verbose output is requested.

Typical usage::

    from mobius_query.utils.logging_config import setup_logging

    setup_logging(verbose=args.verbose)
"""

from __future__ import annotations

import logging

__all__ = ["setup_logging"]

_HANDLER_NAME = "mobius_query.console"


def setup_logging(verbose: bool = False) -> None:
    """Initialise the root logger and tame noisy third-party libraries.

    Calling the helper twice does not duplicate the console handler.

    Args:
        verbose: When *True*, emit DEBUG-level messages to stderr; otherwise
            restrict console output to ``INFO`` and above.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    console = next(
        (h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME), None
    )
    if console is None:
        console = logging.StreamHandler()
        console.set_name(_HANDLER_NAME)
        console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root_logger.addHandler(console)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)

    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)
