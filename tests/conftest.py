import time

import pytest
from azure.core.credentials import AccessToken
from prometheus_client import CollectorRegistry


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


class FakeCredential:
    """
    Stands in for an azure-identity async credential, always
    returning the same token.
    """

    def __init__(self, token: "str", error: "Exception | None" = None) -> "None":
        self.token = token
        self.error = error
        self.scopes: "list[tuple[str, ...]]" = []
        self.closed = False

    async def get_token(self, *scopes: "str", **kwargs: "object") -> "AccessToken":
        self.scopes.append(scopes)
        if self.error is not None:
            raise self.error
        return AccessToken(self.token, int(time.time()) + 3600)

    async def close(self) -> "None":
        self.closed = True


class FakeCredentialFactory:
    """
    Builds FakeCredentials handing out the given tokens in order,
    one per credential. The last token repeats once they run out.
    """

    def __init__(
        self,
        tokens: "list[str] | None" = None,
        error: "Exception | None" = None,
    ) -> "None":
        self._tokens = tokens or ["tok-1"]
        self._error = error
        self.created: "list[FakeCredential]" = []

    def __call__(self) -> "FakeCredential":
        token = self._tokens[min(len(self.created), len(self._tokens) - 1)]
        credential = FakeCredential(token, self._error)
        self.created.append(credential)
        return credential


@pytest.fixture()
def credentials() -> "type[FakeCredentialFactory]":
    return FakeCredentialFactory
