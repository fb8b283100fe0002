"""
Command line interface for progressive indicators.

Commands:
- run: Run an indicator over a CSV of OHLC bars and print the progressive result as JSON
- list: List registered indicators and their parameters

Example:
    progressive-signals run fvg data/BTCUSDT-1m.csv --param thresholdPercent=0.2 --param dynamic=true
    progressive-signals run zigzag data/ES-5m.csv --param deviation=3 --save-state zz.json
    progressive-signals run zigzag data/ES-5m-next.csv --param deviation=3 --state zz.json
    progressive-signals list
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List

import pandas as pd

from .calibrate import dataframe_to_bars
from .contract import calculate_progressive
from .errors import IndicatorError
from .registry import get_indicator, list_available_indicators
from .schemas import indicator_info, progressive_response

logger = logging.getLogger(__name__)


def parse_params(pairs: List[str]) -> Dict[str, Any]:
    """Turn ["key=value", ...] into a params mapping (values stay strings)."""
    params = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        params[key.strip()] = value.strip()
    return params


def run_indicator_command(args) -> bool:
    """Run one indicator over a CSV file."""
    try:
        params = parse_params(args.param)
        indicator = get_indicator(args.indicator)

        df = pd.read_csv(args.csv)
        bars = dataframe_to_bars(df, args.symbol, args.interval)
        logger.info(f"Loaded {len(bars)} bars from {args.csv}")

        previous_state = None
        if args.state:
            with open(args.state) as f:
                previous_state = json.load(f)
            logger.info(f"Resuming from state in {args.state}")

        result = calculate_progressive(indicator, bars, params, previous_state)
        response = progressive_response(indicator.indicator_id, result)

        if args.save_state:
            with open(args.save_state, "w") as f:
                json.dump(response.state, f, indent=2)
            logger.info(f"State saved to {args.save_state}")

        payload = response.model_dump(by_alias=True)
        if not args.include_state:
            payload.pop("state")
        print(json.dumps(payload, indent=2))
        return True

    except (IndicatorError, argparse.ArgumentTypeError) as e:
        logger.error(f"Indicator error: {e}")
        print(f"Error: {e}")
        return False
    except (OSError, ValueError) as e:
        logger.error(f"Input error: {e}")
        print(f"Error: {e}")
        return False


def run_list_command(args) -> bool:
    """Print registered indicators."""
    infos = [indicator_info(entry).model_dump() for entry in list_available_indicators()]
    if args.verbose:
        print(json.dumps(infos, indent=2))
    else:
        for info in infos:
            print(f"{info['id']:<10} {info['name']:<18} warmup={info['warmup']:<4} {info['description']}")
    return True


def create_parser():
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="progressive-signals",
        description="Progressive technical indicators over OHLC bar streams",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser(
        'run',
        help='Run an indicator over a CSV file'
    )
    run_parser.add_argument(
        'indicator',
        help='Indicator id (see "list")'
    )
    run_parser.add_argument(
        'csv',
        help='CSV file with open/high/low/close columns'
    )
    run_parser.add_argument(
        '--param', '-p',
        action='append',
        default=[],
        metavar='KEY=VALUE',
        help='Indicator option (repeatable)'
    )
    run_parser.add_argument(
        '--symbol',
        default='',
        help='Symbol stamped on the bars'
    )
    run_parser.add_argument(
        '--interval',
        default='',
        help='Interval label stamped on the bars'
    )
    run_parser.add_argument(
        '--state',
        help='JSON file with a previously saved state to resume from'
    )
    run_parser.add_argument(
        '--save-state',
        help='Write the resulting state to this JSON file'
    )
    run_parser.add_argument(
        '--include-state',
        action='store_true',
        help='Include the state in the printed result'
    )
    run_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    list_parser = subparsers.add_parser(
        'list',
        help='List available indicators'
    )
    list_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show parameter declarations'
    )

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    argv = sys.argv[1:] if argv is None else argv

    # If no command specified, show help
    if not argv:
        parser.print_help()
        return

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if getattr(args, 'verbose', False) else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == 'run':
        success = run_indicator_command(args)
        sys.exit(0 if success else 1)
    elif args.command == 'list':
        success = run_list_command(args)
        sys.exit(0 if success else 1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
