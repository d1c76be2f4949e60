"""
Domain errors raised by URLService.

Routers translate these into HTTP responses; nothing below the router
layer knows about status codes.
"""


class URLServiceError(Exception):
    """Base class for URL service errors"""


class URLNotFoundError(URLServiceError):
    """No usable record matches the identifier"""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("URL not found")


class URLGoneError(URLServiceError):
    """The identifier matches a soft-deleted record"""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("URL deleted")


class RateLimitExceededError(URLServiceError):
    """The record's access count has reached its rate limit"""

    def __init__(self, identifier: str, rate_limit: int):
        self.identifier = identifier
        self.rate_limit = rate_limit
        super().__init__("Request limit exceeded for this URL")


class AliasConflictError(URLServiceError):
    """The requested alias is held by a different live record"""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__("Alias already used before")


class ShortCodeGenerationError(URLServiceError):
    """No unused short code was found within the retry budget"""
