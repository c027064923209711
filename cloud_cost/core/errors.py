"""
Error taxonomy for pricing queries.

NotFound errors carry the valid alternatives so callers can correct the
request. "No match" is never an error: queries return empty results instead.
"""

from typing import Iterable, List


class CloudCostError(Exception):
    """Base class for all errors raised by Cloud Cost."""


class NotFoundError(CloudCostError):
    """Raised when a requested provider, shape or preset does not exist."""
    def __init__(self, message: str, kind: str, valid_options: Iterable[str] = ()):
        super().__init__(message)
        self.kind = kind
        self.valid_options: List[str] = list(valid_options)


class UnknownProviderError(NotFoundError):
    """Raised for a provider name outside the supported set."""
    def __init__(self, provider: str, valid_options: Iterable[str]):
        options = list(valid_options)
        super().__init__(
            f"Unknown provider: {provider}. Valid providers: {', '.join(options)}",
            kind="provider",
            valid_options=options
        )


class UnknownPresetError(NotFoundError):
    """Raised for a workload preset name that is not defined."""
    def __init__(self, preset: str, valid_options: Iterable[str]):
        options = list(valid_options)
        super().__init__(
            f"Unknown preset: {preset}. Available presets: {', '.join(options)}",
            kind="preset",
            valid_options=options
        )


class PricingConfigurationError(CloudCostError, ValueError):
    """Raised when a pricing bundle is malformed or internally inconsistent."""
