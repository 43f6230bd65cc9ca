"""Custom exceptions for the dual limit-start bot."""


class PolyError(Exception):
    """Base exception for all Poly errors."""


class FeedError(PolyError):
    """Error connecting to or reading from the exchange's market data."""


class QuoteUnavailableError(FeedError):
    """Top-of-book quote could not be fetched for a token."""


class ResolutionUnavailableError(FeedError):
    """Market is closed but the exchange has not published an outcome yet."""


class DiscoveryError(PolyError):
    """Market discovery failed."""


class MarketNotFoundError(DiscoveryError):
    """No tradable market matched the requested slug(s)."""


class DuplicateConditionIdError(DiscoveryError):
    """Two enabled-asset markets share the same condition id."""


class ExecutionError(PolyError):
    """Error placing, cancelling, or checking an order."""


class OrderPlacementError(ExecutionError):
    """Order placement was rejected or failed."""


class AuthenticationError(ExecutionError):
    """CLOB API authentication failed."""


class ConfigError(PolyError):
    """Missing or invalid configuration."""
