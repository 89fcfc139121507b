"""Standalone SLA sweep worker.

Usage:
    python -m dispatch.tools.sla_worker            # sweep every SLA_SWEEP_INTERVAL_SECONDS
    python -m dispatch.tools.sla_worker --once     # one sweep, then exit
    python -m dispatch.tools.sla_worker --interval 30
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from dispatch.adapters.persistence.database import engine
from dispatch.adapters.scheduling.interval_ticker import IntervalTicker
from dispatch.config import settings
from dispatch.infrastructure.api.dependencies import build_sla_monitor

logger = logging.getLogger(__name__)


async def run(once: bool, interval: float) -> int:
    monitor = build_sla_monitor()
    try:
        if once:
            report = await monitor.sweep(settings.sla_sweep_timeout_seconds)
            logger.info(
                "Sweep done: %d expired, %d skipped, %d failed",
                report.expired, report.skipped, report.failed,
            )
            return 1 if report.failed else 0

        ticker = IntervalTicker(interval)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, ticker.stop)
            except NotImplementedError:
                logger.debug("Signal handler for %s not supported on this platform", sig)
        logger.info("SLA worker started, sweeping every %ss", interval)
        await monitor.run(ticker, settings.sla_sweep_timeout_seconds)
        logger.info("SLA worker stopped")
        return 0
    finally:
        await engine.dispose()


def main():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )
    parser = argparse.ArgumentParser(description="Expire partner assignments past their SLA")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument(
        "--interval", type=float, default=settings.sla_sweep_interval_seconds,
        help="Seconds between sweeps (default: SLA_SWEEP_INTERVAL_SECONDS)",
    )
    args = parser.parse_args()
    raise SystemExit(asyncio.run(run(args.once, args.interval)))


if __name__ == "__main__":
    main()
