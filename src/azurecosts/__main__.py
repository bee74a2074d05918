import asyncio
import json

import structlog

from azurecosts.backend import (
    DataQuery,
    DataSourceInstanceSettings,
    PluginContext,
    QueryDataRequest,
    TimeRange,
)
from azurecosts.cli import CliArgs, parse_args
from azurecosts.datasource import AzureCostsDataSource
from azurecosts.errors import AzureCostsError
from azurecosts.logging import setup_logging
from azurecosts.query import SPLIT_MODE

logger = structlog.get_logger()

_REF_ID = "A"


def build_request(args: "CliArgs") -> "QueryDataRequest":
    """
    wraps the command line arguments into a single-query request,
    as the dashboard host would send it.
    """
    query = {
        "refId": _REF_ID,
        "queryText": args.subscription_id,
        "rgSplit": SPLIT_MODE if args.rg_split else "",
        "format": "time_series",
    }
    return QueryDataRequest(
        plugin_context=PluginContext(
            DataSourceInstanceSettings(json_data=args.config.to_json())
        ),
        queries=[
            DataQuery(
                ref_id=_REF_ID,
                json=query,
                time_range=TimeRange(from_=args.start, to=args.end),
            )
        ],
    )


def main() -> "None":
    args = parse_args()
    setup_logging(args.log_level, args.log_format)

    if not args.config.configured:
        raise SystemExit(
            "Azure credentials not configured. Set AZURE_TENANT_ID, "
            "AZURE_CLIENT_ID and AZURE_CLIENT_SECRET environment variables."
        )
    if not args.subscription_id:
        raise SystemExit(
            "No subscription given. Use --subscription or AZURE_SUBSCRIPTION_ID."
        )

    datasource = AzureCostsDataSource()

    async def _run() -> "None":
        try:
            response = await datasource.query_data(build_request(args))
        finally:
            await datasource.close()

        frames = response.responses[_REF_ID].frames
        print(json.dumps([f.to_dict() for f in frames], indent=2))

    try:
        asyncio.run(_run())
    except AzureCostsError as exc:
        logger.error("query_failed", error=str(exc))
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
