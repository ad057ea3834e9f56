"""Allow ``python -m mobius_query``."""

from mobius_query.cli import cli

cli()
