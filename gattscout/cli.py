from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from pathlib import Path
from typing import List, Optional

from .config import SCANNING_MODES, DiscoveryConfig
from .errors import RadioUnavailableError
from .events import AdvertisementEvent, ScanCompleted, ScanStopped
from .logging_setup import configure_logging
from .orchestrator import DiscoveryOrchestrator
from .radio import BleakRadio, RadioStack
from .report import ConsoleSink, ReportSink
from .session import ScanSession

logger = logging.getLogger(__name__)

EXIT_WORDS = {"", "exit", "quit", "q"}


def build_arg_parser(defaults: Optional[DiscoveryConfig] = None) -> argparse.ArgumentParser:
    defaults = defaults or DiscoveryConfig()
    parser = argparse.ArgumentParser(
        prog="gattscout",
        description="Scan for BLE advertisements and list the GATT services of every new device.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=defaults.duration_sec,
        help="Stop scanning after this many seconds (0 waits for 'exit' on stdin).",
    )
    parser.add_argument(
        "--max-concurrent",
        type=int,
        default=defaults.max_concurrent,
        help="Maximum number of devices enumerated at the same time.",
    )
    parser.add_argument(
        "--call-timeout",
        type=float,
        default=defaults.call_timeout_sec,
        help="Timeout in seconds for each service/characteristic lookup.",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=defaults.connect_timeout_sec,
        help="Timeout in seconds when connecting to a device.",
    )
    parser.add_argument(
        "--scanning-mode",
        choices=SCANNING_MODES,
        default=defaults.scanning_mode,
        help="Active scans request scan responses (names); passive scans only listen.",
    )
    parser.add_argument(
        "--adapter",
        default=defaults.adapter,
        help="Bluetooth adapter to use, e.g. hci1 (BlueZ only).",
    )
    parser.add_argument(
        "--no-echo",
        action="store_true",
        help="Only print discovery reports, not every advertisement.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=defaults.log_file,
        help="Also write diagnostic logs to this file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser


async def _wait_for_exit() -> None:
    print("Type 'exit' (or press Enter) to stop scanning.")
    while True:
        try:
            line = await asyncio.to_thread(input)
        except (EOFError, KeyboardInterrupt):
            return
        if line.strip().lower() in EXIT_WORDS:
            return


async def run_discovery(
    radio: RadioStack,
    sink: ReportSink,
    *,
    duration: float = 0.0,
    max_concurrent: int = 4,
    call_timeout: float = 20.0,
    echo_advertisements: bool = True,
    stop_signal: Optional[asyncio.Event] = None,
) -> DiscoveryOrchestrator:
    """
    Run one scan session until ``duration`` elapses or ``stop_signal`` is set
    (stdin when neither is given), then drain in-flight enumerations.
    """
    session = ScanSession(radio)
    orchestrator = DiscoveryOrchestrator(
        radio,
        sink,
        max_concurrent=max_concurrent,
        call_timeout=call_timeout,
        echo_advertisements=echo_advertisements,
    )
    queue = session.bus.subscribe(AdvertisementEvent, ScanCompleted, ScanStopped)
    await session.start()

    consumer = asyncio.create_task(orchestrator.run(queue))
    try:
        if duration > 0:
            if stop_signal is None:
                await asyncio.sleep(duration)
            else:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop_signal.wait(), duration)
            if not (stop_signal and stop_signal.is_set()):
                await session.bus.publish(ScanCompleted(duration_sec=duration))
        elif stop_signal is not None:
            await stop_signal.wait()
        else:
            await _wait_for_exit()
    finally:
        await session.stop()
        await session.wait_stopped()
        await consumer
        await orchestrator.join()
        session.bus.unsubscribe(queue)

    logger.info(
        "Discovered %d device(s), %d enumeration failure(s).",
        orchestrator.reports_emitted,
        orchestrator.failures,
    )
    return orchestrator


async def main_async(argv: Optional[List[str]] = None) -> int:
    defaults = DiscoveryConfig.from_env()
    parser = build_arg_parser(defaults)
    args = parser.parse_args(argv)

    try:
        config = DiscoveryConfig(
            max_concurrent=args.max_concurrent,
            call_timeout_sec=args.call_timeout,
            connect_timeout_sec=args.connect_timeout,
            scanning_mode=args.scanning_mode,
            adapter=args.adapter,
            duration_sec=args.duration,
            log_file=args.log_file,
        )
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, config.log_file)

    radio = BleakRadio(
        scanning_mode=config.scanning_mode,
        adapter=config.adapter,
        connect_timeout=config.connect_timeout_sec,
    )
    try:
        await run_discovery(
            radio,
            ConsoleSink(),
            duration=config.duration_sec,
            max_concurrent=config.max_concurrent,
            call_timeout=config.call_timeout_sec,
            echo_advertisements=not args.no_echo,
        )
    except RadioUnavailableError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        await radio.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    try:
        return asyncio.run(main_async(argv))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
