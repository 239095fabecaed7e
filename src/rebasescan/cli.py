import asyncio, logging
from datetime import timezone
import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from .adapters.rpc_httpx import HttpxRPC
from .application.use_cases import TrackResult, track_rebases
from .config import DEFAULT_BATCH_SIZE, USDN_CONTRACT, USDN_START_BLOCK, ScanConfig
from .domain.models import EnrichedEvent, RebaseSummary

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _event_line(ev: EnrichedEvent) -> str:
    return (f"{ev.block_number} - {ev.formatted_date} - "
            f"Rebased: {ev.old_value} -> {ev.new_value} (+{ev.percent_increase}%)")


def _summary_panel(summary: RebaseSummary) -> Panel:
    lines = [
        f"First rebase: {summary.first_date} (Block {summary.first_block})",
        f"Latest rebase: {summary.last_date} (Block {summary.last_block})",
        f"Initial token value: {summary.initial_value}",
        f"Current token value: {summary.current_value}",
        f"Total token growth from rebases: {summary.total_value_growth}%",
    ]
    if summary.cadence is not None:
        lines.append(f"Average time between rebases: {summary.cadence}")
    return Panel("\n".join(lines), title="Rebase Summary", expand=False)


def _print_result(res: TrackResult) -> None:
    console.print(f"[bold]Total rebase events found[/]: {res.summary.count}")
    if res.summary.count > 0:
        console.print(_summary_panel(res.summary))


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging")
def cli(verbose):
    """rebasescan: USDN rebase (divisor) tracker."""
    _setup_logging(verbose)

@cli.command("track")
@click.option("--rpc", "rpc_url", required=True, envvar="REBASESCAN_RPC_URL", help="RPC endpoint URL")
@click.option("--contract", default=USDN_CONTRACT, show_default=True, envvar="REBASESCAN_CONTRACT",
              help="Token contract emitting Rebase(uint256,uint256)")
@click.option("--from-block", type=int, default=USDN_START_BLOCK, show_default=True)
@click.option("--to-block", type=int, default=None, help="Last block (inclusive); defaults to chain head")
@click.option("--batch-size", type=int, default=DEFAULT_BATCH_SIZE, show_default=True,
              help="Initial blocks per eth_getLogs request")
@click.option("--max-floor-retries", type=int, default=None,
              help="Abort after this many failed retries at the minimum batch size (default: never)")
@click.option("--timeout", "timeout_s", type=int, default=20, show_default=True, help="HTTP timeout (seconds)")
@click.option("--utc/--local-time", default=False, show_default=True, help="Render dates in UTC")
def track_cmd(rpc_url, contract, from_block, to_block, batch_size, max_floor_retries, timeout_s, utc):
    """Scan for rebase events, print each one, then a summary."""
    try:
        config = ScanConfig(
            rpc_url=rpc_url,
            contract=contract,
            start_block=from_block,
            end_block=to_block,
            batch_size=batch_size,
            max_floor_retries=max_floor_retries,
            timeout_s=timeout_s,
        ).validate()
    except ValueError as e:
        raise click.UsageError(str(e))

    tz = timezone.utc if utc else None

    async def run() -> TrackResult:
        console.print("Starting USDN Rebase event tracker...")
        async with HttpxRPC(config.rpc_url, timeout_s=config.timeout_s) as rpc:
            return await track_rebases(
                rpc=rpc, config=config, tz=tz,
                on_event=lambda ev: console.print(_event_line(ev), highlight=False),
            )

    try:
        res = asyncio.run(run())
    except (RuntimeError, ValueError) as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")
    _print_result(res)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
