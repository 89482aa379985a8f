#!/usr/bin/env python3
"""Run the reservation walkthrough against a generated marketplace.

Seeds owners, listings and buyers, drives every buyer through the
negotiation-to-contract workflow and exports the resulting records.
Notifications go to the sinks named by --notify; records go to the
sinks named by --export.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from deal_flow.config import DealFlowConfig, KNOWN_SINKS
from deal_flow.exceptions import ConfigurationError
from deal_flow.logging import setup_logging
from deal_flow.scenarios import ReservationWalkthroughScenario
from deal_flow.sinks import NotificationDispatcher, build_sinks

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--buyers", type=int, default=20, help="Number of buyers (default: 20)")
    parser.add_argument("--owners", type=int, default=4, help="Number of listing owners (default: 4)")
    parser.add_argument(
        "--assets-per-owner", type=int, default=3, help="Listings per owner (default: 3)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--notify",
        default=None,
        help=f"Comma-separated notification sinks ({', '.join(KNOWN_SINKS)}); "
        "defaults to NOTIFICATION_SINKS or console",
    )
    parser.add_argument(
        "--export",
        default="json",
        help="Comma-separated record export sinks (default: json)",
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="JSON output directory")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--log-format", choices=["standard", "json"], default="standard")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = DealFlowConfig.from_env()
        if args.notify is not None:
            config.notifications.sinks = tuple(s.strip() for s in args.notify.split(",") if s.strip())
        if args.output_dir is not None:
            config.output.json_output_dir = args.output_dir
        if args.seed is not None:
            config.seed = args.seed
        config.validate()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(args.log_level or config.log_level, args.log_format)

    dispatcher = NotificationDispatcher(build_sinks(config))
    scenario = ReservationWalkthroughScenario(
        num_buyers=args.buyers,
        num_owners=args.owners,
        assets_per_owner=args.assets_per_owner,
        seed=config.seed,
        config=config,
        dispatcher=dispatcher,
    )

    scenario.generate()

    export_config = DealFlowConfig(output=config.output, kafka=config.kafka)
    export_config.notifications.sinks = tuple(s.strip() for s in args.export.split(",") if s.strip())
    export_config.notifications.topic_prefix = config.notifications.topic_prefix
    try:
        export_config.validate()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    export_sinks = build_sinks(export_config)
    scenario.export(export_sinks)
    for sink in export_sinks:
        sink.close()
    dispatcher.close()

    print(json.dumps(scenario.get_summary(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
