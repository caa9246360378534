"""Exceptions that are allowed to escape a screen-flow run.

Everything else that can go wrong while probing a page is turned into data
(an ``Issue`` or an unsuccessful ``InteractionRecord``) instead of raised.
"""


class ScreenFlowError(Exception):
    """Base class for screen-flow errors."""


class DriverUnavailableError(ScreenFlowError):
    """The browser, context or page could not be acquired."""


class UnreachableBaseUrlError(ScreenFlowError):
    """None of the candidate routes could be navigated to."""

    def __init__(self, base_url: str, attempted: int) -> None:
        super().__init__(f"Base URL {base_url} is unreachable ({attempted} routes failed to load)")
        self.base_url = base_url
        self.attempted = attempted


class ConfigError(ScreenFlowError):
    """A configuration file exists but cannot be used."""
