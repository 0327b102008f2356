"""Monitorchart - adaptive latency charts with live refresh for uptime monitors."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _write_chart(output: Path, render) -> None:
    """Write a render's SVG chart to disk."""
    from .svg import render_svg

    output.write_text(render_svg(render.geometry), encoding="utf-8")
    logger.info(
        "Chart for %s (%s) written to %s",
        render.monitor.name,
        render.range.value,
        output,
    )


def _print_summary(render) -> None:
    """Print the status strip and stat cards for a render."""
    strip = "".join("#" if s == "up" else "." if s == "paused" else "x" for s in render.status_strip)
    print(f"{render.monitor.name} [{render.target}]")
    if render.tags:
        print(f"  tags: {', '.join(render.tags)}")
    if render.maintenance:
        print(f"  {render.maintenance}")
    print(f"  recent: {strip}")
    for card in render.stats:
        print(f"  {card.label}: {card.value}")
    for row in render.events:
        message = f" - {row.message}" if row.message else ""
        print(f"  {row.when}  {row.label}{message}")


def _cmd_render(args: argparse.Namespace) -> None:
    """Execute the render command - fetch once and write an SVG chart."""
    _setup_logging(args.verbose)

    from .client import MonitorNotFoundError, SampleStoreClient, SampleStoreError
    from .config import ConfigError, load_config
    from .detail import render_snapshot
    from .geometry import ChartLayout
    from .ranges import Range

    try:
        config = load_config(args.config)
        range_key = Range.parse(args.range) if args.range else config.chart.default_range
    except (ConfigError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    client = SampleStoreClient(config.store)
    try:
        snapshot = client.fetch_detail(args.monitor_id, range_key, config.chart.events_range)
    except MonitorNotFoundError as e:
        logger.error("%s", e)
        sys.exit(1)
    except SampleStoreError as e:
        logger.error("Failed to fetch monitor %d: %s", args.monitor_id, e)
        sys.exit(1)
    finally:
        client.close()

    layout = ChartLayout.for_container(args.width, fallback_width=config.chart.width, height=config.chart.height)
    render = render_snapshot(snapshot, range_key, layout)
    _write_chart(Path(args.output), render)
    _print_summary(render)


async def _watch(args: argparse.Namespace, config, range_key) -> int:
    """Run the live-refresh loop until interrupted or the monitor disappears."""
    from .client import SampleStoreClient, ThreadedFetcher
    from .detail import MonitorDetail, StaticSurface

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    exit_code = 0

    def _handle_shutdown(sig_name: str) -> None:
        logger.info("Received %s, initiating shutdown...", sig_name)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_shutdown, sig.name)
        except NotImplementedError:
            # Platforms without loop signal support fall back to KeyboardInterrupt.
            pass

    def _on_selection_lost(monitor_id: int) -> None:
        nonlocal exit_code
        logger.error("Monitor %d was deleted or is no longer accessible", monitor_id)
        exit_code = 1
        stop.set()

    output = Path(args.output)
    client = SampleStoreClient(config.store)
    fetcher = ThreadedFetcher(client, loop)
    detail = MonitorDetail(
        fetcher,
        loop,
        StaticSurface(width=args.width),
        config,
        on_render=lambda render: _write_chart(output, render),
        on_selection_lost=_on_selection_lost,
    )
    try:
        detail.set_range(range_key)
        detail.select(args.monitor_id)
        await stop.wait()
    finally:
        detail.clear()
        fetcher.close()
        client.close()
    return exit_code


def _cmd_watch(args: argparse.Namespace) -> None:
    """Execute the watch command - keep the chart file live."""
    _setup_logging(args.verbose)

    from .config import ConfigError, load_config
    from .ranges import Range

    try:
        config = load_config(args.config)
        range_key = Range.parse(args.range) if args.range else config.chart.default_range
    except (ConfigError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    logger.info("Monitorchart %s watching monitor %d", __version__, args.monitor_id)
    try:
        exit_code = asyncio.run(_watch(args, config, range_key))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        exit_code = 0

    logger.info("Shutdown complete")
    if exit_code:
        sys.exit(exit_code)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("monitor_id", type=int, help="ID of the monitor to chart")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: built-in defaults and environment)",
    )
    parser.add_argument(
        "-r", "--range",
        choices=["1h", "3h", "6h", "24h", "7d", "30d"],
        help="Chart range (default: chart.default_range from config)",
    )
    parser.add_argument(
        "-o", "--output",
        default="chart.svg",
        help="Path of the SVG file to write (default: chart.svg)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Chart width in pixels (default: chart.width from config)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )


def main() -> None:
    """Main entry point for the monitorchart package."""
    parser = argparse.ArgumentParser(
        description="Monitorchart - latency charts with live refresh for uptime monitors"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"monitorchart {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser(
        "render",
        help="Fetch a monitor's history once and write an SVG chart",
    )
    _add_common_arguments(render_parser)
    render_parser.set_defaults(func=_cmd_render)

    watch_parser = subparsers.add_parser(
        "watch",
        help="Keep an SVG chart up to date while the monitor is checked",
    )
    _add_common_arguments(watch_parser)
    watch_parser.set_defaults(func=_cmd_watch)

    args = parser.parse_args()
    args.func(args)
