import asyncio
from typing import Callable

import structlog
from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import AzureError
from azure.identity.aio import ClientSecretCredential

from azurecosts.errors import AuthError

logger = structlog.get_logger()

MANAGEMENT_SCOPE = "https://management.azure.com/.default"

CredentialFactory = Callable[[], AsyncTokenCredential]


def client_secret_credential_factory(
    tenant_id: "str",
    client_id: "str",
    client_secret: "str",
) -> "CredentialFactory":
    """
    returns a factory building a fresh ClientSecretCredential for
    the tenant/client/secret triple. Refuses to build one when any
    of the three is missing.
    """

    def _build() -> "AsyncTokenCredential":
        if not (tenant_id and client_id and client_secret):
            raise AuthError("tenant id, client id and client secret are required")
        try:
            return ClientSecretCredential(tenant_id, client_id, client_secret)
        except ValueError as exc:
            raise AuthError(f"invalid credentials: {exc}") from exc

    return _build


class ManagementToken:
    """
    ManagementToken hands out bearer tokens for the management API.
    Caching and expiry are left to the azure-identity credential,
    which is shared by every request of the owning provider.

    When the upstream rejects a token, refresh() replaces the
    credential with a new one so the next token is fetched rather
    than served from the old credential's cache. Refreshes go
    through a lock and are double-checked so concurrent callers
    holding the same stale token trigger a single replacement.
    """

    def __init__(
        self,
        credential_factory: "CredentialFactory",
        scope: "str" = MANAGEMENT_SCOPE,
    ) -> "None":
        self._credential_factory = credential_factory
        self._scope = scope
        self._credential: "AsyncTokenCredential | None" = None
        self._lock: "asyncio.Lock" = asyncio.Lock()

    async def get(self) -> "str":
        if self._credential is None:
            self._credential = self._credential_factory()

        try:
            access_token = await self._credential.get_token(self._scope)
        except AzureError as exc:
            raise AuthError(f"token acquisition failed: {exc}") from exc

        return access_token.token

    async def refresh(self, stale_token: "str") -> "str":
        """
        returns a token other than stale_token. If another task
        already replaced the credential, its token is returned.
        """
        async with self._lock:
            current = await self.get()
            if current != stale_token:
                return current

            logger.debug("azure_credential_replaced")
            await self.close()
            return await self.get()

    async def close(self) -> "None":
        if self._credential is not None:
            credential, self._credential = self._credential, None
            await credential.close()
