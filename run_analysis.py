#!/usr/bin/env python3
"""CLI entrypoint for the equity analysis engine.

Usage::

    python run_analysis.py --tier basic --symbol 005930 --name "Samsung Electronics"
    python run_analysis.py --tier pro --symbol 005930 --name "Samsung Electronics" \\
        --debate-rounds 4 --config config/example.yaml

Personas whose credential variable is unset (see ``.env``) are served by the
deterministic fallback, so the command also works fully offline.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from analysis.errors import AnalysisInputError, UsageLimitExceeded
from analysis.runner import AnalysisRunner
from models.analysis import AnalysisOptions, SubscriptionTier
from models.config import EngineConfig


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a tier-dependent equity analysis.",
    )
    parser.add_argument(
        "--tier",
        required=True,
        choices=[t.value for t in SubscriptionTier],
        help="Subscription tier; decides how many analysts run.",
    )
    parser.add_argument("--symbol", required=True, type=str, help="Ticker symbol.")
    parser.add_argument("--name", required=True, type=str, help="Display name of the company.")
    parser.add_argument(
        "--price",
        default=None,
        type=float,
        help="Current price (default: config default_price).",
    )
    parser.add_argument("--sector", default=None, type=str, help="Optional sector label.")
    parser.add_argument(
        "--debate-rounds",
        default=None,
        type=int,
        help="Run a multi-round debate instead of a one-shot analysis (basic/pro only).",
    )
    parser.add_argument(
        "--config",
        default=None,
        type=str,
        help="Path to a YAML engine configuration file.",
    )
    parser.add_argument("--user-id", default=None, type=str, help="User id for quota checks.")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Serve every analyst from the deterministic fallback (no API calls).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser.parse_args()


def _setup_logging(level: str) -> None:
    """Configure root logger with a clean format."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


async def _main() -> int:
    args = _parse_args()
    _setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    if args.config:
        logger.info("Loading config from '%s'...", args.config)
        config = EngineConfig.from_yaml(args.config)
    else:
        config = EngineConfig()
    if args.mock:
        config = config.model_copy(update={"mock": True})

    runner = AnalysisRunner.from_config(config)
    options = AnalysisOptions(
        user_id=args.user_id,
        sector=args.sector,
        debate_rounds=args.debate_rounds,
    )
    try:
        result = await runner.run(args.tier, args.symbol, args.name, args.price, options)
    except (AnalysisInputError, UsageLimitExceeded) as exc:
        logger.error("%s", exc)
        return 2

    print(result.model_dump_json(indent=2))
    return 0


def main() -> None:
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
