"""Entry point: `riskscan scan <address>` or `riskscan serve`."""

import argparse
import asyncio
import json
import signal
import sys

from loguru import logger

from config.settings import settings
from riskscan.bootstrap import build_scanner
from riskscan.security.exceptions import (
    InvalidScanOptionsError,
    InvalidTokenAddressError,
    ScannerError,
)
from riskscan.security.models import CheckType, SecurityScanResult
from riskscan.security.report import build_security_report
from riskscan.security.scanner import ScanOptions
from riskscan.utils.logger import setup_logger

EXIT_OK = 0
EXIT_SCAN_FAILED = 1
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="riskscan", description="Solana token security risk scanner")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a token mint address")
    scan.add_argument("address", help="Token mint address (base58)")
    scan.add_argument("--market-cap", type=float, default=None, help="Market cap in USD")
    scan.add_argument(
        "--skip",
        action="append",
        default=[],
        choices=[c.value for c in CheckType],
        help="Skip a check (repeatable)",
    )
    scan.add_argument("--json", action="store_true", help="Print the full report as JSON")

    sub.add_parser("serve", help="Run the HTTP API")
    return parser


def format_summary(result: SecurityScanResult) -> str:
    check = result.security_check
    lines = [
        f"Token:    {check.token_address}",
        f"Risk:     {check.risk_score}/100 ({check.risk_level.value})",
        f"Security: {check.security_score}/100",
        f"Checks:   {check.passed_checks} passed, {check.warning_checks} warning, "
        f"{check.failed_checks} failed of {check.total_checks}",
    ]
    if result.degraded_analyzers:
        lines.append(f"Degraded: {', '.join(str(a) for a in result.degraded_analyzers)}")
    lines.append("")
    for finding in check.findings:
        lines.append(f"  [{finding.result.value:<14}] {finding.severity.value:<8} {finding.title}")
    return "\n".join(lines)


async def run_scan(address: str, market_cap: float | None, skip: list[str], as_json: bool) -> int:
    container = build_scanner(settings)
    try:
        options = ScanOptions(market_cap=market_cap, skip_checks=frozenset(skip))
        result = await container.scanner.scan(address, options)
    except (InvalidTokenAddressError, InvalidScanOptionsError) as e:
        logger.error(f"[SCAN] {e}")
        return EXIT_BAD_INPUT
    except ScannerError as e:
        logger.error(f"[SCAN] Scan failed: {e}")
        return EXIT_SCAN_FAILED
    finally:
        await container.close()

    if as_json:
        report = build_security_report(result)
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        print(format_summary(result))
    return EXIT_OK


async def serve() -> None:
    from riskscan.api.server import run_api_server

    logger.info("Starting riskscan API...")
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    server_task = asyncio.create_task(run_api_server())
    done, pending = await asyncio.wait(
        [server_task, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    logger.info("Shutdown complete")


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(json_logs=settings.json_logs, level=settings.log_level)

    if args.command == "serve":
        asyncio.run(serve())
        return EXIT_OK
    return asyncio.run(run_scan(args.address, args.market_cap, args.skip, args.json))


if __name__ == "__main__":
    sys.exit(run())
