"""
request and response records exchanged with the dashboard host.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Union

from azurecosts.models import Frame

# raw JSON as delivered by the host, or already decoded
RawJSON = Union[bytes, str, Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class TimeRange:
    from_: "datetime"
    to: "datetime"


@dataclass(frozen=True, slots=True)
class DataQuery:
    ref_id: "str"
    json: "RawJSON"
    time_range: "TimeRange"


@dataclass(frozen=True, slots=True)
class DataSourceInstanceSettings:
    json_data: "RawJSON" = b"{}"


@dataclass(frozen=True, slots=True)
class PluginContext:
    data_source_instance_settings: "DataSourceInstanceSettings" = field(
        default_factory=DataSourceInstanceSettings
    )


@dataclass(frozen=True, slots=True)
class QueryDataRequest:
    plugin_context: "PluginContext"
    queries: "list[DataQuery]" = field(default_factory=list)


@dataclass(slots=True)
class DataResponse:
    frames: "list[Frame]" = field(default_factory=list)
    # None on success
    error: "str | None" = None


@dataclass(slots=True)
class QueryDataResponse:
    # ref id -> result
    responses: "dict[str, DataResponse]" = field(default_factory=dict)


class HealthStatus(enum.Enum):
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class CheckHealthRequest:
    plugin_context: "PluginContext"


@dataclass(frozen=True, slots=True)
class CheckHealthResult:
    status: "HealthStatus"
    message: "str"
