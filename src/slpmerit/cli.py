"""
Merit CLI - score addresses and inspect token ancestry.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger

from slpmerit.address import to_cash_address, to_slp_address
from slpmerit.aggregator import MeritAggregator
from slpmerit.ancestry import AncestryWalker, ParentMatcher
from slpmerit.backends.base import LedgerBackend
from slpmerit.backends.consumer_api import ConsumerApiBackend
from slpmerit.backends.memory import InMemoryBackend
from slpmerit.config import MeritConfig, Settings, get_settings
from slpmerit.constants import SATS_PER_COIN
from slpmerit.errors import MeritError
from slpmerit.models import MeritReport, ParentRecord, TokenUtxo

app = typer.Typer(
    name="slp-merit",
    help="Token merit (quantity x age) for SLP / Bitcoin Cash addresses",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def make_backend(
    settings: Settings, snapshot: Path | None = None, history_window: int | None = None
) -> LedgerBackend:
    """Snapshot file if given, otherwise the configured consumer-api."""
    if snapshot is not None:
        return InMemoryBackend.from_snapshot(snapshot, history_window=history_window)
    return ConsumerApiBackend(
        base_url=settings.consumer_api_url,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_base_delay=settings.retry_base_delay,
    )


def _load(
    log_level: str | None, verbose: bool, no_age: bool = False
) -> tuple[Settings, MeritConfig]:
    settings = get_settings()
    config = settings.to_merit_config()
    if verbose:
        config = config.model_copy(update={"verbose_logging": True})
    if no_age:
        config = config.model_copy(update={"aging_enabled": False})

    level = log_level or ("DEBUG" if config.verbose_logging else settings.log_level)
    setup_logging(level)
    return settings, config


def format_report(report: MeritReport) -> str:
    lines = [
        f"Address:        {report.address}",
        f"Token:          {report.token_id or 'native (BCH)'}",
    ]
    if report.current_height is not None:
        lines.append(f"Block height:   {report.current_height}")
    lines.append(f"UTXOs:          {len(report.results)}")

    for result in report.results:
        utxo = result.utxo
        if isinstance(utxo, TokenUtxo):
            qty = utxo.token_quantity
        else:
            qty = utxo.native_value / SATS_PER_COIN
        origin = f" (since {result.ancestor.txid[:16]}...)" if result.ancestor else ""
        lines.append(
            f"  {utxo.txid[:16]}...:{utxo.output_index:<3} height {utxo.block_height:>7}  "
            f"qty {qty:>14,.8g}  age {result.age_days:>8.2f}d  merit {result.merit:>16,.2f}"
            f"{origin}"
        )

    lines.append(f"Total quantity: {report.total_quantity:,.8g}")
    lines.append(f"Total merit:    {report.total_merit:,.2f}")
    return "\n".join(lines)


@app.command()
def merit(
    address: str = typer.Argument(..., help="Address (simpleledger:, bitcoincash: or legacy)"),
    token_id: str | None = typer.Option(None, "--token-id", "-t", help="Token id to score"),
    native: bool = typer.Option(False, "--native", help="Score native BCH instead of a token"),
    no_age: bool = typer.Option(False, "--no-age", help="Skip ancestry walk, merit = quantity"),
    snapshot: Path | None = typer.Option(None, "--snapshot", help="JSON ledger snapshot"),
    history_window: int | None = typer.Option(
        None, "--history-window", help="Serve only N most recent history entries (snapshot)"
    ),
    timeout: float | None = typer.Option(None, "--timeout", help="Abort after N seconds"),
    as_json: bool = typer.Option(False, "--json", help="Print the full report as JSON"),
    breakdown: bool = typer.Option(False, "--utxos", "-u", help="Show per-UTXO breakdown"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose diagnostics"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Calculate the aggregate merit of an address."""
    settings, config = _load(log_level, verbose, no_age)
    selected_token = None if native else (token_id or settings.token_id)

    try:
        backend = make_backend(settings, snapshot, history_window)
        report = asyncio.run(_calculate(backend, config, address, selected_token, timeout))
    except (MeritError, TimeoutError) as e:
        logger.error(f"Failed to calculate merit: {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(report.model_dump(), indent=2))
    elif breakdown:
        typer.echo(format_report(report))
    else:
        typer.echo(f"{report.total_merit}")


async def _calculate(
    backend: LedgerBackend,
    config: MeritConfig,
    address: str,
    token_id: str | None,
    timeout: float | None,
) -> MeritReport:
    aggregator = MeritAggregator(backend, config)
    try:
        return await aggregator.calculate(address, token_id, timeout=timeout)
    finally:
        await backend.close()


@app.command()
def parent(
    txid: str = typer.Argument(..., help="Child transaction id"),
    address: str = typer.Argument(..., help="Address the parent must belong to"),
    snapshot: Path | None = typer.Option(None, "--snapshot", help="JSON ledger snapshot"),
    history_window: int | None = typer.Option(None, "--history-window"),
    oldest: bool = typer.Option(False, "--oldest", help="Walk back to the oldest ancestor"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Find the same-address token parent (or oldest ancestor) of a transaction."""
    settings, config = _load(log_level, verbose=False)

    try:
        backend = make_backend(settings, snapshot, history_window)
        found = asyncio.run(_find_parent(backend, config, txid, address, oldest))
    except MeritError as e:
        logger.error(f"Failed to resolve parent: {e}")
        raise typer.Exit(1)

    if found is None:
        typer.echo("No same-address token parent found.")
        return
    typer.echo(json.dumps(found.model_dump(), indent=2))


async def _find_parent(
    backend: LedgerBackend, config: MeritConfig, txid: str, address: str, oldest: bool
) -> ParentRecord | None:
    matcher = ParentMatcher(backend)
    try:
        address = backend.normalize_address(address)
        if oldest:
            return await AncestryWalker(matcher, config).oldest_ancestor(txid, address)
        return await matcher.resolve_parent(txid, address)
    finally:
        await backend.close()


@app.command("address")
def address_cmd(
    address: str = typer.Argument(..., help="Address in any supported format"),
) -> None:
    """Show the CashAddr and SLP forms of an address."""
    setup_logging("WARNING")
    try:
        typer.echo(f"cashaddr: {to_cash_address(address)}")
        typer.echo(f"slpaddr:  {to_slp_address(address)}")
    except MeritError as e:
        logger.error(str(e))
        raise typer.Exit(1)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
