class LLMCompareError(Exception):
    """Base class for everything this package raises on purpose."""


class InvalidInput(LLMCompareError, ValueError):
    """Rejected before any outbound call is made (e.g. blank prompt)."""


class BackendError(LLMCompareError):
    """The comparison backend could not satisfy a request."""


class ProviderCallError(BackendError):
    """
    One provider's call failed. Recorded into that provider's result;
    never aborts sibling calls.
    """

    def __init__(self, message: str, *, provider_id: str | None = None):
        super().__init__(message)
        self.provider_id = provider_id


class HealthCheckError(BackendError):
    """The reachability check failed. Recorded as unhealthy, never re-raised."""


class ResultAlreadySettled(LLMCompareError, RuntimeError):
    pass
