from datetime import datetime
from typing import Iterable

import structlog

from azurecosts.models import DailyEntry, LineItem, SubscriptionWindow
from azurecosts.query import round_to_utc_midnight

logger = structlog.get_logger()

# /subscriptions/<id>/resourceGroups/<rg>/...
_RESOURCE_GROUP_SEGMENT = 4


def resource_group_from_instance_id(instance_id: "str") -> "str | None":
    """
    extracts the lowercased resource group from a resource path.
    Returns None when the path is too short to carry one.
    """
    segments = instance_id.split("/")
    if len(segments) <= _RESOURCE_GROUP_SEGMENT:
        return None
    return segments[_RESOURCE_GROUP_SEGMENT].lower()


def aggregate(
    subscription_id: "str",
    start: "datetime",
    end: "datetime",
    line_items: "Iterable[LineItem]",
) -> "SubscriptionWindow":
    """
    groups line items by resource group and day, summing the pretax
    cost of items that land on the same pair. Items with a malformed
    instance id or a day outside [start, end) are skipped.
    """
    window = SubscriptionWindow(subscription_id=subscription_id, start=start, end=end)
    skipped = 0

    for item in line_items:
        rg = resource_group_from_instance_id(item.instance_id)
        if rg is None:
            logger.debug("line_item_malformed_instance_id", instance_id=item.instance_id)
            skipped += 1
            continue

        day = round_to_utc_midnight(item.usage_start)
        if not start <= day < end:
            skipped += 1
            continue

        daily = window.resource_group_costs.setdefault(rg, {})
        entry = daily.get(day)
        if entry is None:
            daily[day] = DailyEntry(day=day, resource_group=rg, amount=item.pretax_cost)
        else:
            entry.amount += item.pretax_cost

    logger.debug(
        "window_aggregated",
        subscription_id=subscription_id,
        resource_groups=len(window.resource_group_costs),
        skipped=skipped,
    )
    return window
