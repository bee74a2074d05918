from datetime import datetime


class AzureCostsError(Exception):
    """
    base class for every error raised by the adapter.
    """


class ConfigDecodeError(AzureCostsError):
    """
    data source settings JSON could not be decoded.
    """


class QueryDecodeError(AzureCostsError):
    """
    a single query payload is malformed.
    """

    def __init__(self, message: "str", ref_id: "str" = "") -> "None":
        self.ref_id = ref_id
        if ref_id:
            message = f"query {ref_id}: {message}"
        super().__init__(message)


class UpstreamError(AzureCostsError):
    """
    UpstreamError covers failures while talking to Azure. The
    subscription and window are attached once known so the host can
    render a useful message.
    """

    def __init__(
        self,
        message: "str",
        subscription_id: "str" = "",
        start: "datetime | None" = None,
        end: "datetime | None" = None,
    ) -> "None":
        super().__init__(message)
        self.message = message
        self.subscription_id = subscription_id
        self.start = start
        self.end = end

    def with_context(
        self,
        subscription_id: "str",
        start: "datetime",
        end: "datetime",
    ) -> "UpstreamError":
        self.subscription_id = subscription_id
        self.start = start
        self.end = end
        return self

    def __str__(self) -> "str":
        if not self.subscription_id:
            return self.message

        window = ""
        if self.start is not None and self.end is not None:
            window = f" [{self.start.date()}, {self.end.date()})"
        return f"subscription {self.subscription_id}{window}: {self.message}"


class AuthError(UpstreamError):
    """
    token acquisition failed or credentials were rejected.
    """


class TransportError(UpstreamError):
    """
    network or HTTP level failure.
    """


class ProtocolError(UpstreamError):
    """
    response did not match the expected usage-details schema.
    """


class QueryCancelledError(UpstreamError):
    """
    caller cancelled before the fetch completed.
    """
