import asyncio
import time
from typing import Callable

import structlog

from azurecosts.aggregator import aggregate
from azurecosts.backend import (
    CheckHealthRequest,
    CheckHealthResult,
    DataQuery,
    DataResponse,
    HealthStatus,
    QueryDataRequest,
    QueryDataResponse,
)
from azurecosts.cache import SubscriptionCache
from azurecosts.config import PluginConfig
from azurecosts.errors import ConfigDecodeError, QueryDecodeError, UpstreamError
from azurecosts.frames import build_frame
from azurecosts.metrics import MetricsUpdater, default_metrics
from azurecosts.models import SubscriptionWindow
from azurecosts.provider.azure import AzureCostProvider
from azurecosts.provider.base import CostProvider
from azurecosts.query import CostQuery, parse_query

logger = structlog.get_logger()

ProviderFactory = Callable[[PluginConfig], CostProvider]


class AzureCostsDataSource:
    """
    AzureCostsDataSource answers the host's query and health-check
    calls. Each query is normalized to whole UTC days, served from
    the subscription cache when the cached window matches exactly,
    and otherwise fetched from the upstream, aggregated and stored
    before the frame is built.
    """

    def __init__(
        self,
        cache: "SubscriptionCache | None" = None,
        metrics: "MetricsUpdater | None" = None,
        provider_factory: "ProviderFactory | None" = None,
    ) -> "None":
        self._cache = cache if cache is not None else SubscriptionCache()
        self._metrics = metrics if metrics is not None else default_metrics()
        self._provider_factory: "ProviderFactory" = (
            provider_factory or AzureCostProvider.from_config
        )
        # built from the settings of the first query, then reused
        self._provider: "CostProvider | None" = None

    async def close(self) -> "None":
        """
        closes the provider session, if one was opened.
        """
        if self._provider is not None:
            await self._provider.close()
            self._provider = None

    async def query_data(
        self,
        request: "QueryDataRequest",
        cancel_event: "asyncio.Event | None" = None,
    ) -> "QueryDataResponse":
        """
        runs every query of the request in order. The first failure
        aborts the whole batch.
        """
        try:
            config = PluginConfig.from_json(
                request.plugin_context.data_source_instance_settings.json_data
            )
        except ConfigDecodeError:
            logger.exception("config_decode_failed")
            raise

        provider = self._get_provider(config)

        response = QueryDataResponse()
        for data_query in request.queries:
            cost_query, result = await self._query(
                data_query, config, provider, cancel_event
            )
            response.responses[cost_query.ref_id] = result

        return response

    async def check_health(self, request: "CheckHealthRequest") -> "CheckHealthResult":
        try:
            PluginConfig.from_json(
                request.plugin_context.data_source_instance_settings.json_data
            )
        except ConfigDecodeError as exc:
            logger.warning("health_check_config_invalid", error=str(exc))
            return CheckHealthResult(
                status=HealthStatus.ERROR,
                message="Unable to parse data source settings",
            )

        return CheckHealthResult(status=HealthStatus.OK, message="Data source is working")

    def _get_provider(self, config: "PluginConfig") -> "CostProvider":
        if self._provider is None:
            self._provider = self._provider_factory(config)
            logger.info("provider_created", provider=self._provider.name)
        return self._provider

    async def _query(
        self,
        data_query: "DataQuery",
        config: "PluginConfig",
        provider: "CostProvider",
        cancel_event: "asyncio.Event | None",
    ) -> "tuple[CostQuery, DataResponse]":
        try:
            query = parse_query(data_query, config.subscription_id)
        except QueryDecodeError:
            logger.exception("query_decode_failed", ref_id=data_query.ref_id)
            raise

        window = await self._window_for(query, provider, cancel_event)
        frame = build_frame(window, query.split)
        return query, DataResponse(frames=[frame])

    async def _window_for(
        self,
        query: "CostQuery",
        provider: "CostProvider",
        cancel_event: "asyncio.Event | None",
    ) -> "SubscriptionWindow":
        """
        returns the cached window for the query's subscription when
        its dates match, otherwise fetches, aggregates and stores a
        new one. Nothing is stored when the fetch fails.
        """
        async with self._cache.fetch_lock(query.subscription_id):
            window = self._cache.lookup(query.subscription_id)
            if window is not None and window.covers(query.start, query.end):
                logger.debug(
                    "cache_hit",
                    subscription_id=query.subscription_id,
                    start=query.start.isoformat(),
                    end=query.end.isoformat(),
                )
                self._metrics.inc_cache_hit()
                return window

            logger.info(
                "cache_miss",
                subscription_id=query.subscription_id,
                start=query.start.isoformat(),
                end=query.end.isoformat(),
                cached=window is not None,
            )
            self._metrics.inc_cache_miss()

            fetch_start = time.monotonic()
            try:
                line_items = await provider.fetch_line_items(
                    query.subscription_id, query.start, query.end, cancel_event
                )
            except UpstreamError as exc:
                exc.with_context(query.subscription_id, query.start, query.end)
                self._metrics.inc_upstream_error(type(exc).__name__)
                logger.error(
                    "upstream_fetch_failed",
                    subscription_id=query.subscription_id,
                    error=str(exc),
                )
                raise
            finally:
                self._metrics.observe_fetch_duration(time.monotonic() - fetch_start)

            self._metrics.inc_line_items(len(line_items))
            window = aggregate(query.subscription_id, query.start, query.end, line_items)
            self._cache.store(query.subscription_id, window)
            self._metrics.set_last_fetch_success(query.subscription_id, time.time())

            logger.info(
                "cache_populated",
                subscription_id=query.subscription_id,
                line_items=len(line_items),
                resource_groups=len(window.resource_group_costs),
            )
            return window
