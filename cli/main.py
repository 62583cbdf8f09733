"""
cli/main.py - Genesis Snapshot Tool Command Line Interface

Provides command-line tools for:
- Injecting a snapshot into a fresh ledger
- Validating a snapshot against a live ledger
- Exporting the parsed snapshot as CSV
- Any combination of the above in one run

Usage:
    python -m cli.main validate --input snapshot.csv --endpoint http://127.0.0.1:8888
    python -m cli.main inject --input snapshot.csv --private-key 5K...
    python -m cli.main export --input snapshot.csv --output balances.csv
    python -m cli.main run --inject --validate --validate-stake --input snapshot.csv
"""

import asyncio
import functools
import json
import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import RunOptions, SnapshotConfig
from core.exceptions import ConfigurationError, LedgerError, SnapshotFileError
from core.logging_config import setup_logging
from core.snapshot_runner import RunOutcome, SnapshotRunner
from ledger.client import LedgerClient
from ledger.signer import WalletSigner

console = Console(stderr=True)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def async_command(f):
    """Decorator to run async commands; a non-zero return becomes the exit status."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        code = asyncio.run(f(*args, **kwargs))
        if code:
            sys.exit(code)
        return code
    return wrapper


def common_options(f):
    """Options shared by every command."""
    options = [
        click.option('--input', '-i', 'snapshot_input', type=click.Path(dir_okay=False),
                     default=SnapshotConfig.SNAPSHOT_INPUT, show_default=True,
                     help='Snapshot file to read'),
        click.option('--endpoint', 'http_endpoint', default=SnapshotConfig.HTTP_ENDPOINT,
                     show_default=True, help='Ledger node HTTP endpoint'),
        click.option('--debug-account', 'debug_accounts', multiple=True,
                     help='Account to dump while parsing (repeatable)'),
        click.option('--debug', is_flag=True, help='Verbose operational logging'),
        click.option('--log-file', default=SnapshotConfig.LOG_FILE,
                     help='Also write a verbose debug log here'),
        click.option('--mismatch-log', default=SnapshotConfig.MISMATCH_LOG_FILE,
                     help='Also write every finding and query failure here'),
        click.option('--report-json', type=click.Path(dir_okay=False),
                     help='Write the run summary and all mismatches as JSON'),
        click.option('--fail-on-mismatch', is_flag=True,
                     help='Exit with status 2 if any mismatch or query failure is found'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def key_options(f):
    options = [
        click.option('--private-key', envvar='SNAPSHOT_PRIVATE_KEY',
                     help='Key that signs injected transactions (or SNAPSHOT_PRIVATE_KEY)'),
        click.option('--wallet-url', default=SnapshotConfig.WALLET_URL, show_default=True,
                     help='Wallet daemon used for signing'),
        click.option('--wallet-name', default=SnapshotConfig.WALLET_NAME, show_default=True,
                     help='Unlocked wallet to import the key into'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group()
@click.version_option(version=SnapshotConfig.VERSION, prog_name=SnapshotConfig.SYSTEM_NAME)
def cli():
    """Genesis Snapshot Tool - inject, validate and export ledger snapshots"""
    pass


# ============================================================================
# Run
# ============================================================================

def _print_summary(outcome: RunOutcome) -> None:
    ctx = outcome.context
    table = Table(title="Snapshot Run")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    summary = ctx.to_dict()
    for key in ("account_count", "total_balance", "contract_supply",
                "accounts_created", "batches_written", "accounts_validated",
                "balances_checked", "query_failures"):
        table.add_row(key.replace("_", " "), str(summary[key]))
    if outcome.csv_rows is not None:
        table.add_row("csv rows", str(outcome.csv_rows))
    console.print(table)

    counts = outcome.report.counts_by_type()
    if counts:
        mismatch_table = Table(title="Mismatches")
        mismatch_table.add_column("Type", style="red")
        mismatch_table.add_column("Count", justify="right")
        for kind, count in counts.items():
            mismatch_table.add_row(kind, str(count))
        console.print(mismatch_table)
    else:
        console.print("[green]No mismatches found[/green]")


async def _execute(options: RunOptions, log_file: Optional[str],
                   mismatch_log: Optional[str]) -> int:
    setup_logging(debug=options.debug, log_file=log_file, mismatch_log_file=mismatch_log)
    console.print(Panel.fit(f"[bold blue]{SnapshotConfig.SYSTEM_NAME}[/bold blue]"))

    try:
        options.validate_options()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        return EXIT_USAGE

    signer = None
    if options.inject:
        signer = WalletSigner(
            options.private_key,
            wallet_url=options.wallet_url,
            wallet_name=options.wallet_name,
        )

    try:
        async with LedgerClient(options.http_endpoint, signer=signer) as ledger:
            with console.status("Working...") as status:
                def _on_progress(checked: int, total: int, account_name: str) -> None:
                    status.update(f"Checked {checked} out of {total} accounts ({account_name})")

                def _on_batch(batch_number: int, accounts: int) -> None:
                    status.update(f"Created {accounts} accounts in {batch_number} transactions")

                runner = SnapshotRunner(
                    options, ledger, on_progress=_on_progress, on_batch=_on_batch
                )
                outcome = await runner.run()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        return EXIT_USAGE
    except LedgerError as e:
        console.print(f"[red]Run aborted: {e}[/red]")
        return EXIT_FAILURE
    except SnapshotFileError as e:
        console.print(f"[red]{e}[/red]")
        return EXIT_FAILURE
    finally:
        if signer is not None:
            await signer.close()

    _print_summary(outcome)

    if options.report_json:
        with open(options.report_json, "w", encoding="utf-8") as handle:
            json.dump(outcome.to_dict(), handle, indent=2, sort_keys=True)
        console.print(f"[green]Report saved to {options.report_json}[/green]")

    if options.fail_on_mismatch and outcome.has_mismatches:
        return EXIT_USAGE
    return 0


@cli.command()
@click.option('--inject', is_flag=True, help='Replay the snapshot onto the ledger')
@click.option('--validate', is_flag=True, help='Compare the snapshot with the live ledger')
@click.option('--validate-stake', is_flag=True, help='Also compare CPU and NET stake')
@click.option('--write-csv', is_flag=True, help='Export the parsed snapshot as CSV')
@click.option('--output', '-o', 'snapshot_output', default=SnapshotConfig.SNAPSHOT_OUTPUT,
              show_default=True, type=click.Path(dir_okay=False), help='CSV output path')
@common_options
@key_options
@async_command
async def run(inject: bool, validate: bool, validate_stake: bool, write_csv: bool,
              snapshot_output: str, snapshot_input: str, http_endpoint: str,
              debug_accounts: Tuple[str, ...], debug: bool, log_file: Optional[str],
              mismatch_log: Optional[str], report_json: Optional[str], fail_on_mismatch: bool,
              private_key: Optional[str], wallet_url: str, wallet_name: str):
    """Run any combination of inject, validate and export."""
    options = RunOptions(
        inject=inject,
        validate=validate,
        validate_stake=validate_stake,
        write_csv=write_csv,
        debug_accounts=list(debug_accounts),
        debug=debug,
        snapshot_input=snapshot_input,
        snapshot_output=snapshot_output,
        http_endpoint=http_endpoint,
        private_key=private_key,
        wallet_url=wallet_url,
        wallet_name=wallet_name,
        report_json=report_json,
        fail_on_mismatch=fail_on_mismatch,
    )
    return await _execute(options, log_file, mismatch_log)


@cli.command()
@common_options
@key_options
@async_command
async def inject(snapshot_input: str, http_endpoint: str, debug_accounts: Tuple[str, ...],
                 debug: bool, log_file: Optional[str], mismatch_log: Optional[str],
                 report_json: Optional[str], fail_on_mismatch: bool, private_key: Optional[str],
                 wallet_url: str, wallet_name: str):
    """Replay the snapshot onto a fresh ledger. Run once per target ledger."""
    options = RunOptions(
        inject=True,
        debug_accounts=list(debug_accounts),
        debug=debug,
        snapshot_input=snapshot_input,
        http_endpoint=http_endpoint,
        private_key=private_key,
        wallet_url=wallet_url,
        wallet_name=wallet_name,
        report_json=report_json,
        fail_on_mismatch=fail_on_mismatch,
    )
    return await _execute(options, log_file, mismatch_log)


@cli.command()
@click.option('--validate-stake', is_flag=True, help='Also compare CPU and NET stake')
@common_options
@async_command
async def validate(validate_stake: bool, snapshot_input: str, http_endpoint: str,
                   debug_accounts: Tuple[str, ...], debug: bool, log_file: Optional[str],
                   mismatch_log: Optional[str], report_json: Optional[str], fail_on_mismatch: bool):
    """Compare the snapshot with the live ledger (read-only)."""
    options = RunOptions(
        validate=True,
        validate_stake=validate_stake,
        debug_accounts=list(debug_accounts),
        debug=debug,
        snapshot_input=snapshot_input,
        http_endpoint=http_endpoint,
        report_json=report_json,
        fail_on_mismatch=fail_on_mismatch,
    )
    return await _execute(options, log_file, mismatch_log)


@cli.command()
@click.option('--output', '-o', 'snapshot_output', default=SnapshotConfig.SNAPSHOT_OUTPUT,
              show_default=True, type=click.Path(dir_okay=False), help='CSV output path')
@common_options
@async_command
async def export(snapshot_output: str, snapshot_input: str, http_endpoint: str,
                 debug_accounts: Tuple[str, ...], debug: bool, log_file: Optional[str],
                 mismatch_log: Optional[str], report_json: Optional[str], fail_on_mismatch: bool):
    """Write the parsed snapshot as CSV and check it against the issued supply."""
    options = RunOptions(
        write_csv=True,
        debug_accounts=list(debug_accounts),
        debug=debug,
        snapshot_input=snapshot_input,
        snapshot_output=snapshot_output,
        http_endpoint=http_endpoint,
        report_json=report_json,
        fail_on_mismatch=fail_on_mismatch,
    )
    return await _execute(options, log_file, mismatch_log)


def main():
    cli()


if __name__ == '__main__':
    main()
