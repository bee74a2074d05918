import json
import os
from dataclasses import dataclass
from typing import Any, Mapping

from azurecosts.backend import RawJSON
from azurecosts.errors import ConfigDecodeError

# settings JSON key -> attribute name
_SETTINGS_KEYS: "dict[str, str]" = {
    "clientID": "client_id",
    "clientSecret": "client_secret",
    "tenantID": "tenant_id",
    "SubscriptionID": "subscription_id",
}


def decode_json_object(raw: "RawJSON") -> "Mapping[str, Any]":
    """
    decodes host supplied JSON into a mapping. Raises ValueError
    when the payload is not a JSON object.
    """
    if isinstance(raw, Mapping):
        return raw

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")

    # empty settings are valid and mean "nothing configured"
    if not raw.strip():
        return {}

    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


@dataclass
class PluginConfig:
    client_id: "str" = ""
    client_secret: "str" = ""
    tenant_id: "str" = ""
    # default subscription, used when a query carries no queryText
    subscription_id: "str" = ""

    @classmethod
    def from_json(cls, raw: "RawJSON") -> "PluginConfig":
        try:
            data = decode_json_object(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ConfigDecodeError(
                f"unable to decode data source settings: {exc}"
            ) from exc

        values: "dict[str, str]" = {}
        for key, attr in _SETTINGS_KEYS.items():
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigDecodeError(
                    f"setting {key} must be a string, got {type(value).__name__}"
                )
            values[attr] = value
        return cls(**values)

    @classmethod
    def from_env(cls) -> "PluginConfig":
        return cls(
            client_id=os.environ.get("AZURE_CLIENT_ID", ""),
            client_secret=os.environ.get("AZURE_CLIENT_SECRET", ""),
            tenant_id=os.environ.get("AZURE_TENANT_ID", ""),
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
        )

    @property
    def configured(self) -> "bool":
        return bool(self.tenant_id and self.client_id and self.client_secret)

    def to_json(self) -> "dict[str, str]":
        return {key: getattr(self, attr) for key, attr in _SETTINGS_KEYS.items()}
