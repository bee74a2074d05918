from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    LineItem represents one row of the usage-details
    response: one resource's cost on one day.
    """

    subscription_guid: "str"
    # fully-qualified resource path, resource group is segment 4
    instance_id: "str"
    usage_start: "datetime"
    usage_end: "datetime"
    pretax_cost: "float"


@dataclass(slots=True)
class DailyEntry:
    # UTC midnight
    day: "datetime"
    # lowercased, derived from the instance id
    resource_group: "str"
    amount: "float"


@dataclass(slots=True)
class SubscriptionWindow:
    """
    SubscriptionWindow holds the aggregated daily costs of one
    subscription over [start, end). Both bounds are UTC midnight.
    """

    subscription_id: "str"
    start: "datetime"
    end: "datetime"
    # resource group -> day -> entry
    resource_group_costs: "dict[str, dict[datetime, DailyEntry]]" = field(
        default_factory=dict
    )

    def covers(self, start: "datetime", end: "datetime") -> "bool":
        return self.start == start and self.end == end


@dataclass(frozen=True, slots=True)
class Field:
    name: "str"
    values: "list[Any]"


@dataclass(slots=True)
class Frame:
    """
    Frame is a set of equal-length named columns handed back
    to the dashboard host.
    """

    name: "str"
    fields: "list[Field]" = field(default_factory=list)

    def get_field(self, name: "str") -> "Field":
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    @property
    def field_names(self) -> "list[str]":
        return [f.name for f in self.fields]

    def to_dict(self) -> "dict[str, Any]":
        """
        renders the frame as plain JSON-friendly data, with
        timestamps in ISO-8601.
        """
        return {
            "name": self.name,
            "fields": [
                {
                    "name": f.name,
                    "values": [
                        v.isoformat() if isinstance(v, datetime) else v
                        for v in f.values
                    ],
                }
                for f in self.fields
            ],
        }
