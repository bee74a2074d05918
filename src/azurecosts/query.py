from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from azurecosts.backend import DataQuery
from azurecosts.config import decode_json_object
from azurecosts.errors import QueryDecodeError

logger = structlog.get_logger()

SPLIT_MODE = "split"

# keys that must be strings when present
_STRING_KEYS = ("queryText", "rgSplit", "refId", "format")


@dataclass(frozen=True, slots=True)
class CostQuery:
    """
    CostQuery is a normalized inbound query. start and end are
    already rounded down to UTC midnight and act as the cache key
    dates.
    """

    ref_id: "str"
    subscription_id: "str"
    start: "datetime"
    end: "datetime"
    split: "bool"
    format: "str" = ""


def round_to_utc_midnight(ts: "datetime") -> "datetime":
    """
    converts ts to UTC and truncates it to the start of its day.
    Naive timestamps are taken to be UTC already.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_query(
    query: "DataQuery",
    default_subscription_id: "str" = "",
) -> "CostQuery":
    try:
        payload = decode_json_object(query.json)
    except (ValueError, UnicodeDecodeError) as exc:
        raise QueryDecodeError(f"unable to decode query: {exc}", query.ref_id) from exc

    for key in _STRING_KEYS:
        value: "Any" = payload.get(key)
        if value is not None and not isinstance(value, str):
            raise QueryDecodeError(
                f"{key} must be a string, got {type(value).__name__}",
                query.ref_id,
            )

    subscription_id = (payload.get("queryText") or "").strip()
    if not subscription_id:
        subscription_id = default_subscription_id
    if not subscription_id:
        raise QueryDecodeError("no subscription id in queryText", query.ref_id)

    fmt = payload.get("format") or ""
    if not fmt:
        logger.warning(
            "format_empty_defaulting_to_time_series", ref_id=query.ref_id
        )

    start = round_to_utc_midnight(query.time_range.from_)
    end = round_to_utc_midnight(query.time_range.to)
    if end < start:
        raise QueryDecodeError(
            f"time range ends ({end.date()}) before it starts ({start.date()})",
            query.ref_id,
        )

    return CostQuery(
        ref_id=query.ref_id or payload.get("refId") or "",
        subscription_id=subscription_id,
        start=start,
        end=end,
        split=payload.get("rgSplit") == SPLIT_MODE,
        format=fmt,
    )
