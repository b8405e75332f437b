"""Request logging errors."""


class RequestLogError(Exception):
    """Base class for request logging errors."""


class ConfigurationError(RequestLogError):
    """A middleware ran without the middleware it depends on.

    This is a programming-order error (e.g. the request id middleware was
    installed without LoggerMiddleware in front of it), not a per-request
    condition.
    """


class EnrichmentCallbackError(RequestLogError):
    """A user supplied field update or message format callback raised.

    Only ever logged, never propagated to the request chain.
    """

    def __init__(self, callback: str, original: BaseException):
        super().__init__(f"{callback} failed: {original}")
        self.callback = callback
        self.original = original
