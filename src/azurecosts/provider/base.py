import asyncio
from datetime import datetime
from typing import Protocol, Sequence

from azurecosts.models import LineItem


class CostProvider(Protocol):
    """
    CostProvider stands as the common protocol for upstream
    billing sources.

    Providers fetch the raw line items of one subscription over
    [start, end) and leave grouping to the aggregator.
    """

    @property
    def name(self) -> "str": ...

    async def fetch_line_items(
        self,
        subscription_id: "str",
        start: "datetime",
        end: "datetime",
        cancel_event: "asyncio.Event | None" = None,
    ) -> "Sequence[LineItem]": ...

    async def close(self) -> "None": ...
