"""Command line entry point.

Reads a pool snapshot JSON file (subgraph field names are accepted) and
prints results as JSON on stdout. Logs go to stderr.

Examples:
  poolmath join pool.json --amounts 10 10
  poolmath exit pool.json --bpt 5 --token-index 0
  poolmath exit pool.json --bpt 5 --token 0xabc
  poolmath exit pool.json --amounts 1 0
  poolmath liquidity pool.json --price 0xabc=1.0 --price 0xdef=2000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from poolmath.calculator import get_calculator
from poolmath.config import PoolMathConfig
from poolmath.errors import PoolMathError
from poolmath.liquidity import total_liquidity
from poolmath.models.pool import PoolSnapshot
from poolmath.price_impact import PriceImpactMode, price_impact
from poolmath.result import CalcResult, PriceImpactResult

logger = structlog.get_logger()


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load_pool(path: Path) -> PoolSnapshot:
    with path.open() as f:
        return PoolSnapshot.from_payload(json.load(f))


def _parse_prices(values: list[str]) -> dict[str, str]:
    prices = {}
    for item in values:
        address, sep, price = item.partition("=")
        if not sep or not address:
            raise argparse.ArgumentTypeError(f"Expected ADDRESS=PRICE, got {item!r}")
        prices[address] = price
    return prices


def _calc_json(result: CalcResult) -> dict[str, Any]:
    return {
        "value": result.value,
        "approximate": result.is_approximate,
        "error": result.error.value if result.error else None,
    }


def _impact_json(result: PriceImpactResult) -> dict[str, Any]:
    return {
        "value": str(result.value),
        "magnitude": str(result.magnitude),
        "high": result.is_high(),
        "approximate": result.is_approximate,
        "error": result.error.value if result.error else None,
    }


def _run_join(args: argparse.Namespace, pool: PoolSnapshot, config: PoolMathConfig) -> dict[str, Any]:
    calc = get_calculator(pool, config)
    return {
        "operation": "join",
        "bpt_out": _calc_json(calc.exact_tokens_in_for_bpt_out(args.amounts)),
        "price_impact": _impact_json(
            price_impact(pool, args.amounts, PriceImpactMode.JOIN, config=config)
        ),
    }


def _resolve_token_index(args: argparse.Namespace, pool: PoolSnapshot) -> int | None:
    if args.token is None:
        return args.token_index
    index = pool.token_index(args.token)
    if index is None:
        raise argparse.ArgumentTypeError(f"Token {args.token} is not in the pool")
    return index


def _run_exit(args: argparse.Namespace, pool: PoolSnapshot, config: PoolMathConfig) -> dict[str, Any]:
    calc = get_calculator(pool, config)
    if args.amounts:
        return {
            "operation": "exit_exact_out",
            "bpt_in": _calc_json(calc.bpt_in_for_exact_tokens_out(args.amounts)),
            "price_impact": _impact_json(
                price_impact(pool, args.amounts, PriceImpactMode.EXIT_EXACT_OUT, config=config)
            ),
        }
    if args.bpt is None:
        raise argparse.ArgumentTypeError("exit requires --amounts or --bpt")

    token_index = _resolve_token_index(args, pool)
    if token_index is not None:
        return {
            "operation": "exit_single_asset",
            "amount_out": _calc_json(calc.exact_bpt_in_for_token_out(args.bpt, token_index)),
            "price_impact": _impact_json(
                price_impact(
                    pool,
                    mode=PriceImpactMode.EXIT_SINGLE_ASSET,
                    bpt_in=args.bpt,
                    token_index=token_index,
                    config=config,
                )
            ),
        }
    return {
        "operation": "exit_proportional",
        "amounts_out": calc.exact_bpt_in_for_tokens_out(args.bpt),
        "price_impact": _impact_json(
            price_impact(pool, mode=PriceImpactMode.EXIT_PROPORTIONAL, bpt_in=args.bpt, config=config)
        ),
    }


def _run_liquidity(args: argparse.Namespace, pool: PoolSnapshot, config: PoolMathConfig) -> dict[str, Any]:
    prices = _parse_prices(args.price)
    return {
        "operation": "liquidity",
        "total_liquidity": str(total_liquidity(pool, prices, config=config)),
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="poolmath",
        description="Join, exit and liquidity math for Balancer-style pools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    join = subparsers.add_parser("join", help="BPT out and price impact for a deposit")
    join.add_argument("pool", type=Path, help="Pool snapshot JSON file")
    join.add_argument("--amounts", nargs="+", required=True, help="Amount per token, in pool order")
    join.set_defaults(handler=_run_join)

    exit_ = subparsers.add_parser("exit", help="Withdrawal amounts and price impact")
    exit_.add_argument("pool", type=Path, help="Pool snapshot JSON file")
    exit_.add_argument("--amounts", nargs="+", help="Exact amounts out, in pool order")
    exit_.add_argument("--bpt", help="Exact BPT in")
    single = exit_.add_mutually_exclusive_group()
    single.add_argument("--token-index", type=int, help="Single token to exit to (with --bpt)")
    single.add_argument("--token", metavar="ADDRESS", help="Single token to exit to, by address (with --bpt)")
    exit_.set_defaults(handler=_run_exit)

    liquidity = subparsers.add_parser("liquidity", help="Total pool value")
    liquidity.add_argument("pool", type=Path, help="Pool snapshot JSON file")
    liquidity.add_argument(
        "--price",
        action="append",
        default=[],
        metavar="ADDRESS=PRICE",
        help="Reference price of a token (repeatable)",
    )
    liquidity.set_defaults(handler=_run_liquidity)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI. Returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    config = PoolMathConfig.from_env()

    try:
        pool = _load_pool(args.pool)
        output = args.handler(args, pool, config)
    except OSError as e:
        logger.error("pool_file_unreadable", path=str(args.pool), error=str(e))
        print(f"Error: cannot read {args.pool}: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        logger.error("pool_file_invalid_json", path=str(args.pool), error=str(e))
        print(f"Error: {args.pool} is not valid JSON: {e}", file=sys.stderr)
        return 1
    except (PoolMathError, argparse.ArgumentTypeError, IndexError) as e:
        logger.error("poolmath_command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
