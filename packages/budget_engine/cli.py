# ruff: noqa: I001
"""CLI for the ``budget_engine`` package.

This module exposes a Typer-based console interface over the engine. The
database URL is read from ``DATABASE_URL`` (a local ``.env`` is loaded with
``python-dotenv``) or passed with ``--database-url``. Business logic lives in
``budget_engine.api`` and related modules; commands here only parse input,
call the API and render results with ``rich``.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .logging_setup import configure_logging
from .models import BudgetMode, BudgetType, SeriesKey

DEFAULT_INSTALLMENT_COUNT = 2

console = Console()

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    help="Monthly budget planning with recurring and installment propagation.",
)


class _State:
    database_url: str | None = None


_state = _State()


def _store():
    # Local import keeps `--help` fast and free of DB side effects.
    from db.client import create_schema

    from .store import SqlBudgetStore

    create_schema(database_url=_state.database_url)
    return SqlBudgetStore(database_url=_state.database_url)


def _key(
    budget_type: BudgetType,
    source_id: int | None,
    group_id: int | None,
    subgroup_id: int | None,
) -> SeriesKey:
    from .series import series_key

    if budget_type is BudgetType.INCOME and source_id is None:
        raise typer.BadParameter("income budgets need --source-id")
    if budget_type is BudgetType.EXPENSE and group_id is None:
        raise typer.BadParameter("expense budgets need --group-id")
    return series_key(
        budget_type, source_id=source_id, group_id=group_id, subgroup_id=subgroup_id
    )


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
YEAR_OPTION: OptionInfo = typer.Option(..., "--year", min=1, max=9999, help="Calendar year")
MONTH_OPTION: OptionInfo = typer.Option(..., "--month", min=1, max=12, help="Calendar month (1-12)")
TYPE_OPTION: OptionInfo = typer.Option(BudgetType.EXPENSE, "--type", help="income or expense")
SOURCE_OPTION: OptionInfo = typer.Option(None, "--source-id", help="Income source id")
GROUP_OPTION: OptionInfo = typer.Option(None, "--group-id", help="Expense group id")
SUBGROUP_OPTION: OptionInfo = typer.Option(None, "--subgroup-id", help="Expense subgroup id")


@app.command("init-db")
def cmd_init_db() -> None:
    """Create tables (if missing) and seed default categories and sources."""

    from .initialization import InitializationService

    seeded = InitializationService(_store()).run()
    typer.echo("Seeded default categories and sources." if seeded else "Already initialized.")


@app.command("set")
def cmd_set(
    year: int = YEAR_OPTION,
    month: int = MONTH_OPTION,
    amount: str = typer.Option(..., "--amount", help="Amount, e.g. 1500 or 99.90"),
    budget_type: BudgetType = TYPE_OPTION,
    source_id: int | None = SOURCE_OPTION,
    group_id: int | None = GROUP_OPTION,
    subgroup_id: int | None = SUBGROUP_OPTION,
    mode: BudgetMode = typer.Option(
        BudgetMode.UNIQUE, "--mode", help="unique, recurring or installment"
    ),
    installments: int = typer.Option(
        DEFAULT_INSTALLMENT_COUNT, "--installments", min=2, help="Installment count"
    ),
    fixed_cost: bool = typer.Option(False, "--fixed-cost", help="Mark as a fixed cost"),
) -> None:
    """Create or edit the budget for one month, propagating series modes."""

    from .api import save_budget

    key = _key(budget_type, source_id, group_id, subgroup_id)
    try:
        saved = save_budget(
            _store(),
            year=year,
            month=month,
            key=key,
            amount=amount,
            mode=mode,
            installments_total=installments if mode is BudgetMode.INSTALLMENT else None,
            is_fixed_cost=fixed_cost,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from e
    typer.echo(f"Saved {saved.label()} amount={saved.amount} mode={saved.mode}")


@app.command("delete")
def cmd_delete(
    year: int = YEAR_OPTION,
    month: int = MONTH_OPTION,
    budget_type: BudgetType = TYPE_OPTION,
    source_id: int | None = SOURCE_OPTION,
    group_id: int | None = GROUP_OPTION,
    subgroup_id: int | None = SUBGROUP_OPTION,
) -> None:
    """Delete one month's budget; series keep their history as unique budgets."""

    from .api import delete_budget

    key = _key(budget_type, source_id, group_id, subgroup_id)
    result = delete_budget(_store(), year=year, month=month, key=key)
    if result is None:
        typer.echo("Nothing to delete.")
        raise typer.Exit(1)
    typer.echo(
        f"Deleted {result.future_deleted}; froze {result.past_converted} past months, "
        f"filled {result.past_created} missing ones."
    )


@app.command("show")
def cmd_show(year: int = YEAR_OPTION, month: int = MONTH_OPTION) -> None:
    """Fill missing series budgets for a month, then list that month."""

    from .api import copy_forward_if_missing

    store = _store()
    result = copy_forward_if_missing(store, year, month)
    if not result.success:
        console.print(f"[yellow]Could not fill recurring budgets: {result.error}[/yellow]")

    table = Table(title=f"Budgets {year:04d}-{month:02d}")
    table.add_column("Type")
    table.add_column("Dimension")
    table.add_column("Amount", justify="right")
    table.add_column("Mode")
    table.add_column("Installment", justify="right")
    for d in store.get_month(year, month):
        installment = (
            f"{d.installment_index}/{d.installments_total}" if d.installments_total else ""
        )
        table.add_row(str(d.type), str(d.key), f"{d.amount:.2f}", str(d.mode), installment)
    console.print(table)
    if result.copied_count:
        console.print(f"Copied {result.copied_count} budgets forward.")


@app.command("extend")
def cmd_extend(year: int = YEAR_OPTION) -> None:
    """Make sure recurring budgets reach the given year."""

    from .api import ensure_recurring_budgets_for_year

    created = ensure_recurring_budgets_for_year(_store(), year)
    typer.echo(f"Created {created} budgets.")


@app.command("export")
def cmd_export(
    output: Path = typer.Option(..., "--output", "-o", dir_okay=False, help="Target JSON file"),
) -> None:
    """Write all categories, sources and budgets to a JSON file."""

    from .transfer import dumps, export_data

    output.write_text(dumps(export_data(_store())), encoding="utf-8")
    typer.echo(f"Exported to {output}")


@app.command("import")
def cmd_import(
    input_path: Path = typer.Option(
        ..., "--input", "-i", exists=True, dir_okay=False, readable=True, help="JSON export file"
    ),
) -> None:
    """Replace all data with the contents of a JSON export."""

    from .errors import ImportValidationError
    from .transfer import import_data

    try:
        payload = import_data(_store(), input_path.read_text(encoding="utf-8"))
    except ImportValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from e
    typer.echo(f"Imported {len(payload.budgets)} budgets.")


@app.command("reset")
def cmd_reset(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    """Delete everything and re-seed the defaults."""

    from .transfer import reset_database

    if not yes:
        typer.confirm("This deletes all budgets, categories and sources. Continue?", abort=True)
    reset_database(_store())
    typer.echo("Database reset.")


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override BUDGET_ENGINE_LOG_LEVEL (e.g. DEBUG)."
    ),
    debug: list[str] | None = typer.Option(
        None, "--debug", help="Engine module to log at DEBUG (repeatable), e.g. split."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        configure_logging(log_level, debug_modules=debug or None)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--debug") from e
    _state.database_url = database_url

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
