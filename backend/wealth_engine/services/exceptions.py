# backend/wealth_engine/services/exceptions.py
"""
Service layer exceptions.

Degraded data (a missing FX rate, a stale quote, an over-sold lot list) is
never an exception: calculators record a warning and carry on. These
exceptions cover programming errors and lookups of things that do not exist.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidGranularityError
    │   └── InvalidTimeframeError
    ├── NotFoundError
    │   ├── PortfolioNotFoundError
    │   ├── HoldingNotFoundError
    │   └── LotNotFoundError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── TickerNotFoundError
    │   └── RateLimitError
    └── PersistenceError
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a programmatic argument is invalid.

    Attributes:
        field: The argument that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidGranularityError(ValidationError):
    """
    Raised when an aggregation granularity is not recognized.

    Valid granularities are: day, week, month
    """

    def __init__(self, granularity: str) -> None:
        self.granularity = granularity
        super().__init__(
            f"Invalid granularity: '{granularity}'. Valid options: day, week, month",
            field="granularity",
        )


class InvalidTimeframeError(ValidationError):
    """
    Raised when a chart timeframe is not recognized.

    Valid timeframes are: 1W, 1M, 3M, 6M, 1Y, ALL
    """

    def __init__(self, timeframe: str) -> None:
        self.timeframe = timeframe
        super().__init__(
            f"Invalid timeframe: '{timeframe}'. Valid options: 1W, 1M, 3M, 6M, 1Y, ALL",
            field="timeframe",
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for missing resources.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Holding")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """Raised when a portfolio ID is unknown."""

    def __init__(self, portfolio_id: str) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


class HoldingNotFoundError(NotFoundError):
    """Raised when a symbol is not held in the given portfolio."""

    def __init__(self, symbol: str, portfolio_id: str) -> None:
        self.symbol = symbol
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Holding '{symbol}' not found in portfolio {portfolio_id}",
            resource_type="Holding",
            resource_id=symbol,
        )


class LotNotFoundError(NotFoundError):
    """Raised when a lot ID is not part of the holding."""

    def __init__(self, lot_id: str, symbol: str) -> None:
        self.lot_id = lot_id
        self.symbol = symbol
        super().__init__(
            f"Lot {lot_id} not found in holding '{symbol}'",
            resource_type="Lot",
            resource_id=lot_id,
        )


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a market data provider is temporarily unavailable
    (network timeout, server error, maintenance).

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class TickerNotFoundError(MarketDataError):
    """
    Raised when the provider does not recognize a symbol.

    This is NOT a retryable error.
    """

    def __init__(self, symbol: str, provider: str) -> None:
        message = f"Symbol '{symbol}' not found by {provider}"
        super().__init__(message, provider=provider)
        self.symbol = symbol


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


# =============================================================================
# PERSISTENCE ERRORS
# =============================================================================


class PersistenceError(ServiceError):
    """
    Raised when a state document cannot be read or written.

    Attributes:
        key: Storage key involved
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Persistence failed for '{key}': {reason}")


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidGranularityError",
    "InvalidTimeframeError",
    # Not Found
    "NotFoundError",
    "PortfolioNotFoundError",
    "HoldingNotFoundError",
    "LotNotFoundError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    # Persistence
    "PersistenceError",
]
