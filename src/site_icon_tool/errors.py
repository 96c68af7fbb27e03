"""Exception hierarchy for icon lookup failures."""


class SiteIconError(Exception):
    """Base class for all site-icon-tool errors."""


class InvalidOriginError(SiteIconError, ValueError):
    """Raised when user input cannot be interpreted as a web origin."""

    def __init__(self, value: str):
        super().__init__(f"Invalid URL: {value!r}")
        self.value = value


class IconNotFoundError(SiteIconError):
    """Raised when discovery and validation produced nothing usable."""

    def __init__(self, origin: str):
        super().__init__(f"No valid icons found for {origin}")
        self.origin = origin


class FetchError(SiteIconError):
    """
    Raised when downloading the selected icon fails.

    The kind mirrors HTTPResult.error_type so callers can choose a status:
    "timeout", "connection", "not_found", "invalid_content" or "general".
    """

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
