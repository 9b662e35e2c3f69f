"""BudgetBuddy CLI application using Typer.

Drives a sync session from the terminal: start the bank login, wait for
the push-TAN, review the fetched transactions and import them into YNAB.
``--demo`` runs everything in-process against the demo bank and budget.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from functools import lru_cache
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from budgetbuddy.application.sync_flow import (
    Notification,
    NotificationLevel,
    SyncFlow,
    SyncFlowSnapshot,
)
from budgetbuddy.domain.budget.value_objects import BudgetCategory
from budgetbuddy.domain.sync.value_objects import (
    SyncSession,
    SyncSessionStatus,
    SyncTransaction,
)
from budgetbuddy.infrastructure.api import BudgetBuddyApiClient
from budgetbuddy.infrastructure.memory import InMemorySyncBackend
from budgetbuddy_config.settings import get_settings
from budgetbuddy_demo import (
    DEMO_BUDGET_ID,
    DemoBank,
    DemoBudget,
    DemoRuleStore,
    DemoSettings,
)

app = typer.Typer(
    name="budgetbuddy",
    help="BudgetBuddy - review bank transactions and import them into YNAB",
    no_args_is_help=True,
)
console = Console()

logger = logging.getLogger(__name__)

_LEVEL_STYLES = {
    NotificationLevel.SUCCESS: "green",
    NotificationLevel.INFO: "cyan",
    NotificationLevel.WARNING: "yellow",
    NotificationLevel.ERROR: "bold red",
}


@lru_cache(maxsize=1)
def _configure_logging() -> None:
    """Configure application logging.

    Sets up logging for the budgetbuddy packages with:
    - Console output with timestamps and module names
    - Configurable log level (from settings)
    - WARNING level for noisy third-party libraries
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    logging.getLogger("budgetbuddy").setLevel(log_level)
    logging.getLogger("budgetbuddy_demo").setLevel(log_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_notification(notification: Notification) -> None:
    style = _LEVEL_STYLES[notification.level]
    console.print(f"[{style}]{notification.message}[/{style}]")


def _build_flow(demo: bool) -> tuple[SyncFlow, Optional[BudgetBuddyApiClient]]:
    if demo:
        logger.debug("Using the in-process demo backend")
        budget = DemoBudget()
        backend = InMemorySyncBackend(DemoBank(), budget, budget_id=DEMO_BUDGET_ID)
        flow = SyncFlow(
            sync_port=backend,
            budget_port=budget,
            settings_port=DemoSettings(),
            rule_port=DemoRuleStore(),
            notification_sink=_print_notification,
        )
        return flow, None

    settings = get_settings()
    logger.debug("Using the BudgetBuddy API at %s", settings.api_base_url)
    client = BudgetBuddyApiClient.from_settings(settings)
    flow = SyncFlow(
        sync_port=client,
        budget_port=client,
        settings_port=client,
        rule_port=client,
        notification_sink=_print_notification,
    )
    return flow, client


def _session_panel(session: SyncSession) -> Panel:
    lines = [
        f"[bold]Session[/bold]   {session.id}",
        f"[bold]Status[/bold]    {session.describe_status()}",
        f"[bold]Started[/bold]   {session.started_at:%Y-%m-%d %H:%M}",
        f"[bold]Fetched[/bold]   {session.transaction_count}",
        f"[bold]Imported[/bold]  {session.imported_count}",
        f"[bold]Skipped[/bold]   {session.skipped_count}",
    ]
    style = "red" if session.is_failed else "green"
    return Panel("\n".join(lines), title="Sync session", border_style=style)


def _category_label(tx: SyncTransaction) -> str:
    if tx.is_split:
        return ", ".join(
            split.category_name or split.category_id for split in tx.splits
        )
    return tx.category_name or tx.category_id or "-"


def _transactions_table(snapshot: SyncFlowSnapshot) -> Table:
    table = Table(title="Transactions", show_lines=False)
    table.add_column("Date", style="dim")
    table.add_column("Payee")
    table.add_column("Amount", justify="right")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("Duplicate", style="yellow")

    for tx in snapshot.transactions.with_default([]):
        amount_style = "green" if tx.transaction.is_credit() else "red"
        table.add_row(
            tx.transaction.booking_date.isoformat(),
            (tx.payee_override or tx.transaction.payee or tx.transaction.memo)[:40],
            f"[{amount_style}]{tx.transaction.amount}[/{amount_style}]",
            _category_label(tx),
            tx.status.value,
            tx.duplicate_status.kind.value if tx.duplicate_status.is_duplicate else "",
        )
    return table


def _print_summary(snapshot: SyncFlowSnapshot) -> None:
    summary = snapshot.summary
    console.print(
        f"[bold]{summary.total}[/bold] transactions: "
        f"{summary.categorized} categorized, "
        f"{summary.uncategorized} uncategorized, "
        f"{summary.skipped} skipped, "
        f"{summary.confirmed_duplicates} confirmed duplicates, "
        f"{summary.ready_to_import} ready to import"
    )


def _categories_table(categories: list[BudgetCategory]) -> Table:
    table = Table(title="YNAB categories")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Group", style="cyan")
    table.add_column("Category")
    table.add_column("Id", style="dim")
    for number, category in enumerate(categories, start=1):
        table.add_row(str(number), category.group_name, category.name, category.id)
    return table


async def _review(flow: SyncFlow) -> None:
    """Ask for a category for every row that has none yet."""
    categories = flow.snapshot().categories.with_default([])
    open_rows = [
        tx
        for tx in flow.snapshot().transactions.with_default([])
        if not tx.is_categorized and not tx.is_skipped
    ]
    if not categories or not open_rows:
        return

    console.print(_categories_table(categories))
    console.print(
        "[dim]Category number to assign, 's' to skip, Enter to leave as is[/dim]"
    )
    for tx in open_rows:
        answer = typer.prompt(str(tx.transaction), default="", show_default=False)
        answer = answer.strip().lower()
        if not answer:
            continue
        if answer == "s":
            await flow.skip(tx.id)
        elif answer.isdigit() and 1 <= int(answer) <= len(categories):
            await flow.categorize(tx.id, categories[int(answer) - 1].id)
        else:
            console.print(f"[yellow]Unknown choice '{answer}', left as is[/yellow]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _status() -> int:
    flow, client = _build_flow(demo=False)
    try:
        session = await flow.session.load_current_session()
    finally:
        await client.close()

    if flow.session.session.is_failure:
        return 1
    if session is None:
        console.print("[dim]No active sync session.[/dim]")
        return 0
    console.print(_session_panel(session))
    return 0


@app.command("status")
def status() -> None:
    """Show the current sync session."""
    _configure_logging()
    raise typer.Exit(code=asyncio.run(_status()))


async def _sync(demo: bool, review: bool, do_import: bool, yes: bool) -> int:
    flow, client = _build_flow(demo)
    try:
        await flow.load_categories()

        await flow.start_sync()
        session = flow.session.current_session
        if session is None or session.status != SyncSessionStatus.AWAITING_TAN:
            return 1

        if not yes and not typer.confirm(
            "Approved the push-TAN in your banking app?",
            default=True,
        ):
            await flow.cancel_sync()
            return 1

        if not await flow.confirm_tan():
            return 1
        if not flow.store.transactions.is_success:
            return 1

        if review:
            await _review(flow)

        snapshot = flow.snapshot()
        console.print(_transactions_table(snapshot))
        _print_summary(snapshot)

        if do_import and await flow.import_to_ynab() is None:
            return 1

        session = flow.session.current_session
        if session is not None:
            console.print(_session_panel(session))
        return 0
    finally:
        if client is not None:
            await client.close()


@app.command("sync")
def sync(
    demo: bool = typer.Option(
        False, "--demo", help="Use the offline demo bank and budget"
    ),
    review: bool = typer.Option(
        True, "--review/--no-review", help="Ask for a category per open row"
    ),
    do_import: bool = typer.Option(
        True, "--import/--no-import", help="Import into YNAB after reviewing"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask before confirming the TAN"
    ),
) -> None:
    """Start a sync session, confirm the TAN, review and import."""
    _configure_logging()
    raise typer.Exit(code=asyncio.run(_sync(demo, review, do_import, yes)))


async def _categories(demo: bool) -> int:
    flow, client = _build_flow(demo)
    try:
        categories = await flow.load_categories()
    finally:
        if client is not None:
            await client.close()

    if flow.store.categories.is_failure:
        return 1
    if not categories:
        console.print("[dim]No categories (is a default budget configured?)[/dim]")
        return 0

    console.print(_categories_table(categories))
    return 0


@app.command("categories")
def categories(
    demo: bool = typer.Option(
        False, "--demo", help="Use the offline demo budget"
    ),
) -> None:
    """List the categories of the default budget."""
    _configure_logging()
    raise typer.Exit(code=asyncio.run(_categories(demo)))


async def _cancel() -> int:
    flow, client = _build_flow(demo=False)
    try:
        session = await flow.session.load_current_session()
        if session is None:
            if flow.session.session.is_failure:
                return 1
            console.print("[dim]No active sync session.[/dim]")
            return 0
        return 0 if await flow.cancel_sync() else 1
    finally:
        await client.close()


@app.command("cancel")
def cancel() -> None:
    """Cancel the current sync session."""
    _configure_logging()
    raise typer.Exit(code=asyncio.run(_cancel()))


def cli() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli()
