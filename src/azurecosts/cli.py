import argparse
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from azurecosts.config import PluginConfig
from azurecosts.logging import LOG_FORMATS


@dataclass
class CliArgs:
    config: "PluginConfig"
    subscription_id: "str"
    start: "datetime"
    end: "datetime"
    rg_split: "bool" = False
    log_level: "str" = "info"
    log_format: "str" = "console"


def _parse_date(value: "str") -> "datetime":
    try:
        ts = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date: {value}") from exc
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def parse_args(argv: "list[str] | None" = None) -> "CliArgs":
    parser = argparse.ArgumentParser(
        prog="azurecosts",
        description="Fetch daily Azure costs for a subscription as a frame",
    )
    parser.add_argument(
        "--subscription",
        dest="subscription_id",
        default="",
        help="Subscription id (default: $AZURE_SUBSCRIPTION_ID)",
    )
    parser.add_argument(
        "--from",
        dest="start",
        type=_parse_date,
        default=None,
        help="Window start, ISO date (default: 7 days ago)",
    )
    parser.add_argument(
        "--to",
        dest="end",
        type=_parse_date,
        default=None,
        help="Window end, exclusive, ISO date (default: today)",
    )
    parser.add_argument(
        "--rg-split",
        dest="rg_split",
        action="store_true",
        help="One column per resource group instead of a subscription total",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=list(LOG_FORMATS),
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    config = PluginConfig.from_env()
    end = args.end or datetime.now(timezone.utc)
    start = args.start or end - timedelta(days=7)
    return CliArgs(
        config=config,
        subscription_id=args.subscription_id or config.subscription_id,
        start=start,
        end=end,
        rg_split=args.rg_split,
        log_level=args.log_level,
        log_format=args.log_format,
    )
