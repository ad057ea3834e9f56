"""\b
Command-line interface entry point for *mobius_query*.

The group callback loads the configuration, merges command-line overrides and
stores the settings on the Click context.  Sub-commands open the session on
first use, so ``--help`` and input validation never touch the network.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import click

from mobius_query import __version__
from mobius_query.api.config_loaders import load_mobius_config
from mobius_query.api.session import connect
from mobius_query.dvh import get_plan_check_dvh
from mobius_query.errors import MobiusError
from mobius_query.matcher import match_plan_check
from mobius_query.query import query_plan_checks
from mobius_query.roster import fetch_patient_list
from mobius_query.utils.display import (
    display_dvh,
    display_match,
    display_patients,
    display_results,
)
from mobius_query.utils.logging_config import setup_logging


def _client(ctx: click.Context):
    """Return the session stored on *ctx*, connecting on first use."""
    state = ctx.find_root().obj
    if state.client is None:
        try:
            state.client = connect(state.settings)
        except MobiusError as exc:
            raise click.ClickException(str(exc)) from exc
    return state.client


@click.group()
@click.version_option(__version__)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, exists=True),
    envvar="MOBIUS_CONFIG_DIR",
    help="Directory containing mobius.yaml.",
)
@click.option("--server", help="Mobius3D host or URL (overrides configuration).")
@click.option("-u", "--username", help="Mobius3D username (overrides configuration).")
@click.option("-p", "--password", help="Mobius3D password (overrides configuration).")
@click.option("--timeout", type=float, help="Per-request timeout in seconds.")
@click.option("--verbose", is_flag=True, help="Enable debug-level logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_dir: str | None,
    server: str | None,
    username: str | None,
    password: str | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """Search Mobius3D plan checks."""
    setup_logging(verbose=verbose)

    settings = load_mobius_config(config_dir)
    overrides = {
        "server": server,
        "username": username,
        "password": password,
        "timeout": timeout,
    }
    settings = settings.model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )
    ctx.obj = SimpleNamespace(settings=settings, client=None)


@cli.command("patients")
@click.pass_context
def patients(ctx: click.Context) -> None:
    """List every patient with plan checks on the server."""
    client = _client(ctx)
    try:
        roster = fetch_patient_list(client)
    except MobiusError as exc:
        raise click.ClickException(str(exc)) from exc
    display_patients(roster)


@cli.command("match")
@click.option("--id", "patient_id", required=True, help="Patient ID.")
@click.option("--plan", "plan_name", help="Plan check name (exact, case-insensitive).")
@click.option("--date", help="Plan date, e.g. '2017-03-01 14:00' (server-local).")
@click.option("--range", "range_hours", type=float, help="Date window half-width in hours.")
@click.option("--utc", "utc_offset", type=float, help="Server UTC offset in hours.")
@click.option(
    "--inclusive/--exclusive",
    default=None,
    help="Accept plans exactly on the window boundary.",
)
@click.pass_context
def match(
    ctx: click.Context,
    patient_id: str,
    plan_name: str | None,
    date: str | None,
    range_hours: float | None,
    utc_offset: float | None,
    inclusive: bool | None,
) -> None:
    """Find one plan check by patient ID and plan name or date."""
    if not plan_name and not date:
        raise click.UsageError("Provide --plan or --date.")

    settings = ctx.find_root().obj.settings
    client = _client(ctx)
    try:
        found = match_plan_check(
            client,
            patient_id,
            plan_name=plan_name,
            date=date,
            range_hours=settings.date_range_hours if range_hours is None else range_hours,
            utc_offset=settings.utc_offset if utc_offset is None else utc_offset,
            inclusive=settings.date_window_inclusive if inclusive is None else inclusive,
        )
    except MobiusError as exc:
        raise click.ClickException(str(exc)) from exc

    if found is None:
        click.echo("[WARNING] No matching plan check found.", err=True)
        ctx.exit(1)
    display_match(found)


@cli.command("query")
@click.option("--machine", multiple=True, help="Treatment machine pattern.")
@click.option("--plan", "plan_name", multiple=True, help="Plan name pattern.")
@click.option("--rotation", multiple=True, help="Beam rotation type pattern.")
@click.option("--mlc", multiple=True, help="MLC type pattern.")
@click.option("--energy", multiple=True, type=float, help="Beam energy.")
@click.option("--limit-set", "limit_set", multiple=True, help="Limit set pattern.")
@click.option("--structure", multiple=True, help="ROI name pattern; adds volume and DVH.")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    help="Write the full table to a .csv or .json file.",
)
@click.pass_context
def query(ctx: click.Context, output: str | None, **criteria) -> None:
    """Search every plan check; repeat an option to OR its patterns."""
    # Empty tuples mean "not supplied"
    criteria = {k: list(v) for k, v in criteria.items() if v}
    client = _client(ctx)

    with click.progressbar(length=100, label="Searching plan list") as bar:
        shown = [0]

        def _advance(pct: float) -> None:
            step = int(pct) - shown[0]
            if step > 0:
                bar.update(step)
                shown[0] += step

        try:
            result = query_plan_checks(client, progress=_advance, **criteria)
        except MobiusError as exc:
            raise click.ClickException(str(exc)) from exc

    display_results(result.table)
    click.echo(f"Completed in {result.elapsed:0.3f} seconds")

    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            result.table.to_json(path)
        else:
            result.table.to_csv(path)


@cli.command("dvh")
@click.option("--cid", required=True, help="Plan check request CID.")
@click.pass_context
def dvh(ctx: click.Context, cid: str) -> None:
    """Show the DVH curves stored for one plan check."""
    client = _client(ctx)
    try:
        series = get_plan_check_dvh(client, cid=cid)
    except MobiusError as exc:
        raise click.ClickException(str(exc)) from exc
    display_dvh(series)


if __name__ == "__main__":
    cli()
