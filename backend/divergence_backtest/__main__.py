"""CLI entry point for the divergence backtest.

Reads bars from a JSON or CSV file, runs detection and the SL/TP trade
simulation, and prints a console report.

Usage:
    python -m divergence_backtest --bars usdjpy_1h.json
    python -m divergence_backtest --bars usdjpy_1h.csv --symbol EUR_USD --range-upper 20
    python -m divergence_backtest --bars usdjpy_1h.json --config divergence.yaml -o result.json
"""

import argparse
import csv
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import ValidationError

from divergence_core.models.bar import Bar
from divergence_core.models.converters import bars_from_rows

from divergence_backtest.config import get_backtest_settings
from divergence_backtest.divergence_config import load_divergence_config
from divergence_backtest.report import ReportFormatter
from divergence_backtest.runner import BacktestConfig, BacktestRunner


def load_bars(path: Path) -> list[Bar]:
    """Load bars from a JSON or CSV file.

    JSON may be a list of rows or an object with a "data" list. CSV needs
    openTime, open, high, low and close columns.

    Raises:
        ValueError: If the file cannot be parsed into bars
    """
    if path.suffix.lower() == ".csv":
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
    else:
        with open(path) as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {path}: {e}") from e
        rows = raw.get("data", []) if isinstance(raw, dict) else raw
        if not isinstance(rows, list):
            raise ValueError(f"Expected a list of bars in {path}")
    return bars_from_rows(rows)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest RSI divergence signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m divergence_backtest --bars usdjpy_1h.json
  python -m divergence_backtest --bars eurusd_1h.csv --symbol EUR_USD
  python -m divergence_backtest --bars usdjpy_1h.json --stop-loss 20 --take-profit 40
        """,
    )
    parser.add_argument(
        "--bars",
        type=Path,
        required=True,
        help="Bar file (.json or .csv) with openTime/open/high/low/close",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="divergence.yaml path (default: DIVERGENCE_CONFIG_FILE)",
    )
    parser.add_argument("--symbol", type=str, default=None, help="Pair, e.g. USD_JPY")
    parser.add_argument("--interval", type=str, default=None, help="Bar interval, e.g. 1hour")
    parser.add_argument("--range-lower", type=int, default=None, help="Min bars between pivots")
    parser.add_argument("--range-upper", type=int, default=None, help="Max bars between pivots")
    parser.add_argument("--stop-loss", type=Decimal, default=None, help="Stop loss in pips")
    parser.add_argument("--take-profit", type=Decimal, default=None, help="Take profit in pips")
    parser.add_argument(
        "--timezone",
        type=str,
        default=None,
        help="Display timezone for the report (default: DIVERGENCE_DISPLAY_TIMEZONE)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BacktestConfig:
    """Merge divergence.yaml with command-line overrides.

    Raises:
        ValueError: If the merged parameters are invalid
    """
    settings = get_backtest_settings()
    app_config = load_divergence_config(args.config or Path(settings.config_file))

    updates: dict = {}
    if args.symbol:
        updates["symbol"] = args.symbol
    if args.interval:
        updates["interval"] = args.interval

    divergence_updates = {
        k: v
        for k, v in (("range_lower", args.range_lower), ("range_upper", args.range_upper))
        if v is not None
    }
    if divergence_updates:
        updates["divergence"] = app_config.divergence.model_validate(
            {**app_config.divergence.model_dump(), **divergence_updates}
        )

    risk_updates = {
        k: v
        for k, v in (("stop_loss_pips", args.stop_loss), ("take_profit_pips", args.take_profit))
        if v is not None
    }
    if risk_updates:
        updates["risk"] = app_config.risk.model_validate(
            {**app_config.risk.model_dump(), **risk_updates}
        )

    return BacktestConfig.from_app_config(app_config.model_copy(update=updates))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_backtest_settings()

    # Configure logging
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    display_tz = args.timezone or settings.display_timezone

    try:
        ZoneInfo(display_tz)
        config = build_config(args)
        bars = load_bars(args.bars)
    except (OSError, ValueError, ValidationError, yaml.YAMLError, ZoneInfoNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not bars:
        print(f"Error: no bars in {args.bars}", file=sys.stderr)
        return 1

    print(f"\nBacktest: {config.symbol} {config.interval}")
    print(f"Bars: {len(bars)}")

    result = BacktestRunner(config).run(bars)

    ReportFormatter.print_console(result, display_tz)

    if args.output:
        ReportFormatter.save_json(result, args.output, display_tz)
    return 0


if __name__ == "__main__":
    sys.exit(main())
