import asyncio
import re
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from azurecosts.config import PluginConfig
from azurecosts.errors import (
    AuthError,
    ProtocolError,
    QueryCancelledError,
    TransportError,
)
from azurecosts.models import LineItem
from azurecosts.provider.auth import (
    CredentialFactory,
    ManagementToken,
    client_secret_credential_factory,
)

logger = structlog.get_logger()

AZURE_MANAGEMENT_URL = "https://management.azure.com"
# legacy usage-details schema, the one carrying pretaxCost and instanceId
USAGE_DETAILS_API_VERSION = "2019-01-01"

# Azure emits up to 7 fractional digits, datetime only takes 6
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def usage_details_url(subscription_id: "str") -> "str":
    return (
        f"{AZURE_MANAGEMENT_URL}/subscriptions/{subscription_id}"
        f"/providers/Microsoft.Consumption/usageDetails"
    )


def parse_timestamp(value: "str") -> "datetime":
    """
    parses an Azure timestamp into an aware UTC datetime. Naive
    values are taken to be UTC.
    """
    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_line_item(raw: "Any") -> "LineItem":
    """
    converts one entry of the response's value array into a
    LineItem. Raises ProtocolError on missing or invalid fields.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("properties"), dict):
        raise ProtocolError("usage detail without properties object")

    props = raw["properties"]
    try:
        instance_id = props["instanceId"]
        usage_start = parse_timestamp(props["usageStart"])
        usage_end = (
            parse_timestamp(props["usageEnd"]) if props.get("usageEnd") else usage_start
        )
        pretax_cost = float(props["pretaxCost"])
    except KeyError as exc:
        raise ProtocolError(f"usage detail missing field {exc}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ProtocolError(f"usage detail has an invalid field: {exc}") from exc

    if not isinstance(instance_id, str):
        raise ProtocolError("usage detail instanceId is not a string")

    return LineItem(
        subscription_guid=str(props.get("subscriptionGuid") or ""),
        instance_id=instance_id,
        usage_start=usage_start,
        usage_end=usage_end,
        pretax_cost=pretax_cost,
    )


class AzureCostProvider:
    """
    AzureCostProvider implements the CostProvider protocol against the
    Azure Consumption usage-details API. Tokens come from an
    azure-identity credential; usage pages are fetched with httpx,
    following nextLink pagination until the result set is exhausted.
    """

    def __init__(
        self,
        credential_factory: "CredentialFactory",
        client: "httpx.AsyncClient | None" = None,
    ) -> "None":
        self._client: "httpx.AsyncClient" = client or httpx.AsyncClient(timeout=30.0)
        self._token = ManagementToken(credential_factory)

    @classmethod
    def from_config(cls, config: "PluginConfig") -> "AzureCostProvider":
        return cls(
            client_secret_credential_factory(
                config.tenant_id, config.client_id, config.client_secret
            )
        )

    @property
    def name(self) -> "str":
        return "azure"

    async def close(self) -> "None":
        """
        closes the credential and the underlying HTTP client.
        """
        await self._token.close()
        await self._client.aclose()

    async def fetch_line_items(
        self,
        subscription_id: "str",
        start: "datetime",
        end: "datetime",
        cancel_event: "asyncio.Event | None" = None,
    ) -> "list[LineItem]":
        """
        fetches every usage detail of the subscription whose usage
        starts in [start, end).
        """
        if not subscription_id:
            raise ProtocolError("subscription id is required")

        records: "list[LineItem]" = []
        url = usage_details_url(subscription_id)
        params: "dict[str, str] | None" = {
            "api-version": USAGE_DETAILS_API_VERSION,
            "$filter": (
                f"properties/usageStart ge '{start.date().isoformat()}' and "
                f"properties/usageStart lt '{end.date().isoformat()}'"
            ),
        }
        page = 0

        # loop over nextLink pages until none is returned
        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "azure_fetch_cancelled",
                    subscription_id=subscription_id,
                    pages=page,
                )
                raise QueryCancelledError("fetch cancelled by caller")

            page += 1
            logger.debug(
                "azure_fetch_usage_page",
                subscription_id=subscription_id,
                page=page,
            )
            data = await self._get_json(url, params)

            values = data.get("value")
            if not isinstance(values, list):
                raise ProtocolError("usage details response has no value array")
            records.extend(parse_line_item(v) for v in values)

            next_link = data.get("nextLink")
            if not next_link:
                break

            # nextLink already carries api-version and the skip token
            url = next_link
            params = None

        logger.debug(
            "azure_usage_done",
            subscription_id=subscription_id,
            pages=page,
            record_count=len(records),
        )
        return records

    async def _get_json(
        self,
        url: "str",
        params: "dict[str, str] | None",
    ) -> "dict[str, Any]":
        token = await self._token.get()
        resp = await self._send(url, params, token)

        # the token may have been revoked early, refetch it once
        if resp.status_code == 401:
            logger.info("azure_token_rejected_refreshing")
            token = await self._token.refresh(token)
            resp = await self._send(url, params, token)
            if resp.status_code == 401:
                raise AuthError("credentials rejected by usage details endpoint")

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"usage details request failed with status {resp.status_code}"
            ) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProtocolError(f"usage details response is not JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ProtocolError("usage details response is not a JSON object")
        return data

    async def _send(
        self,
        url: "str",
        params: "dict[str, str] | None",
        token: "str",
    ) -> "httpx.Response":
        try:
            return await self._client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"usage details request failed: {exc}") from exc
