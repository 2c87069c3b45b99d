"""Command-line entry point of the panel tester.

Usage:
    # Main board tester with the default bench wiring
    paneltest

    # Add-on board tester with a station file, logging to stderr
    TESTER_REPORT_TYPE=auxboard paneltest --config station.yaml --log-file -

Options that vary per deployment come from ``TESTER_*`` environment
variables (see ``paneltest_runner.config``).
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading

import colorama

from paneltest_core.errors import PaneltestError, ProcessExecutionError
from paneltest_logbus.bus import LogBus, Reporter
from paneltest_outbox.outbox import ReportOutbox
from paneltest_outbox.sink import RpcReportSink
from paneltest_outbox.store import JsonFailureStore
from paneltest_station.flashing import build_firmware

from paneltest_runner.builder import build_station
from paneltest_runner.config import (
    DEFAULT_LOG_FILE,
    MAINBOARD,
    STDERR_LOG,
    StationConfig,
    TesterOptions,
    load_station_config,
)
from paneltest_runner.worker import TestWorker

logger = logging.getLogger(__name__)

# Time the uploader gets for its final cycle on Ctrl-C
SHUTDOWN_TIMEOUT = 10.0


def setup_logging(debug: bool = False, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Configure logging.

    Records go to a file by default so they stay out of the terminal, which
    belongs to the renderer. None or "-" logs to stderr.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=None if log_file in (None, STDERR_LOG) else log_file,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def maybe_build_firmware(
    options: TesterOptions, station: StationConfig, reporter: Reporter
) -> None:
    """Build the main board firmware once before testing starts, unless disabled.

    Add-on boards are never flashed, so nothing is built for them.

    Raises:
        ProcessExecutionError: If the build fails.
    """
    if options.report_type != MAINBOARD:
        logger.info("No firmware to build for %s boards", options.report_type)
        return

    if options.no_build:
        reporter.in_progress("Skipping firmware build...")
        logger.info("Skipping firmware build")
        return

    reporter.in_progress("Building firmware...")
    build_firmware(station.firmware.environment, station.firmware.project_dir)
    reporter.success("Firmware built")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Panel tester for tracker boards",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", "-c", help="Station configuration YAML file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-file", help='Write logs to this file, or "-" for stderr (default: TESTER_LOG_FILE)'
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        options = TesterOptions.from_env()
    except PaneltestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging(args.debug, args.log_file or options.log_file)
    colorama.just_fix_windows_console()

    bus = LogBus()
    reporter = bus.reporter()
    renderer = bus.renderer()

    try:
        station_config = load_station_config(args.config)
        maybe_build_firmware(options, station_config, reporter)
        station = build_station(options, station_config, reporter)
    except ProcessExecutionError as exc:
        logger.error("Firmware build failed: %s", exc)
        print(f"Could not build firmware: {exc}", file=sys.stderr)
        return 1
    except PaneltestError as exc:
        logger.error("Startup failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    sink = RpcReportSink(options.rpc_url, options.rpc_auth_token)
    outbox = ReportOutbox(
        sink,
        JsonFailureStore(options.failure_file),
        report_type=options.report_type,
        tester_id=options.tester_identity,
        interval_seconds=options.upload_interval,
        retry_failed=options.retry_failed,
    )
    worker = TestWorker(station.pipeline, reporter, outbox)

    uploader_thread = threading.Thread(target=outbox.run, name="uploader", daemon=True)
    worker_thread = threading.Thread(target=worker.run_forever, name="worker", daemon=True)
    uploader_thread.start()
    worker_thread.start()
    logger.info(
        "Tester %s started: %s boards, reports to %s",
        options.tester_identity,
        options.report_type,
        options.rpc_url,
    )

    try:
        renderer.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        worker.stop()
        outbox.stop()
        uploader_thread.join(timeout=SHUTDOWN_TIMEOUT)
        station.close()
        sink.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
