from datetime import datetime, timedelta

from azurecosts.models import Field, Frame, SubscriptionWindow

FRAME_NAME = "response"
TIME_FIELD = "time"
SUBSCRIPTION_FIELD = "subscription"

_ONE_DAY = timedelta(days=1)


def day_axis(start: "datetime", end: "datetime") -> "list[datetime]":
    """
    returns every day in the half-open range [start, end).
    """
    days: "list[datetime]" = []
    current = start
    while current < end:
        days.append(current)
        current += _ONE_DAY
    return days


def build_split_frame(window: "SubscriptionWindow") -> "Frame":
    """
    one float column per resource group, filled with 0.0 on days
    without costs, followed by the time column.
    """
    times = day_axis(window.start, window.end)
    frame = Frame(name=FRAME_NAME)

    for rg, costs in window.resource_group_costs.items():
        amounts = [costs[day].amount if day in costs else 0.0 for day in times]
        frame.fields.append(Field(name=rg, values=amounts))

    frame.fields.append(Field(name=TIME_FIELD, values=times))
    return frame


def build_total_frame(window: "SubscriptionWindow") -> "Frame":
    """
    time plus a single subscription column holding the sum across
    all resource groups per day.
    """
    totals: "dict[datetime, float]" = {}
    for costs in window.resource_group_costs.values():
        for day, entry in costs.items():
            totals[day] = totals.get(day, 0.0) + entry.amount

    times = day_axis(window.start, window.end)
    return Frame(
        name=FRAME_NAME,
        fields=[
            Field(name=TIME_FIELD, values=times),
            Field(name=SUBSCRIPTION_FIELD, values=[totals.get(d, 0.0) for d in times]),
        ],
    )


def build_frame(window: "SubscriptionWindow", split: "bool") -> "Frame":
    if split:
        return build_split_frame(window)
    return build_total_frame(window)
