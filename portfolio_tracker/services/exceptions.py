# portfolio_tracker/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain errors raised by the store and by the
provider adapters. Missing prices and missing rates are NOT exceptions past
the capability boundary: the price and currency services turn provider
errors into None, and the valuation engine turns None into explicit
pending states.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── SellExceedsLotError
    │   ├── InvalidLotReferenceError
    │   └── ImmutableFieldError
    ├── NotFoundError
    │   ├── PortfolioNotFoundError
    │   ├── AssetNotFoundError
    │   ├── TransactionNotFoundError
    │   └── CategoryNotFoundError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── SymbolNotFoundError
    │   └── RateLimitError
    └── FXRateError
        └── FXProviderError
            └── FXRateNotQuotedError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when circuit breaker is open and blocking requests
"""

from decimal import Decimal


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
    Raised when a store operation would break a data invariant.

    Field-level input validation (formats, positivity) is handled by the
    Pydantic schemas; this covers rules that need stored state.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class SellExceedsLotError(ValidationError):
    """
    Raised when a sell would take more units than its lot has left.

    Attributes:
        lot_id: The buy transaction the sell closes against
        requested: Quantity the sell asked for
        available: Remaining quantity in the lot
    """

    def __init__(self, lot_id: str, requested: Decimal, available: Decimal) -> None:
        self.lot_id = lot_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot sell {requested} from lot {lot_id}: only {available} remaining",
            field="quantity",
        )


class InvalidLotReferenceError(ValidationError):
    """
    Raised when a sell names a lot that is not a buy of the same asset.
    """

    def __init__(self, lot_id: str | None, asset_id: str) -> None:
        self.lot_id = lot_id
        self.asset_id = asset_id
        if lot_id is None:
            message = "A sell transaction must reference the lot it closes"
        else:
            message = f"Lot {lot_id} is not an open buy of asset {asset_id}"
        super().__init__(message, field="lot_id")


class ImmutableFieldError(ValidationError):
    """Raised when an update tries to change a field fixed at creation."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Field '{field}' cannot be changed after creation", field=field)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Asset")
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
    """Raised when a portfolio cannot be found."""

    def __init__(self, portfolio_id: str) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


class AssetNotFoundError(NotFoundError):
    """Raised when an asset cannot be found."""

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(
            f"Asset {asset_id} not found",
            resource_type="Asset",
            resource_id=asset_id,
        )


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction cannot be found."""

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} not found",
            resource_type="Transaction",
            resource_id=transaction_id,
        )


class CategoryNotFoundError(NotFoundError):
    """Raised when a category cannot be found."""

    def __init__(self, category_id: str) -> None:
        self.category_id = category_id
        super().__init__(
            f"Category {category_id} not found",
            resource_type="Category",
            resource_id=category_id,
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
    Raised when a market data provider is temporarily unavailable.

    Examples:
    - Network timeout
    - Server errors (500, 502, 503)
    - Malformed response

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class SymbolNotFoundError(MarketDataError):
    """
    Raised when the provider does not know a symbol (or a symbol/currency
    pair, for crypto).

    This is NOT a retryable error.
    """

    def __init__(self, symbol: str, provider: str, currency: str | None = None) -> None:
        target = f"{symbol}/{currency}" if currency else symbol
        super().__init__(f"Symbol '{target}' not found by {provider}", provider=provider)
        self.symbol = symbol
        self.currency = currency


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
# FX RATE ERRORS
# =============================================================================


class FXRateError(ServiceError):
    """
    Base exception for FX rate errors.

    Attributes:
        base_currency: The currency converted from
        quote_currency: The currency converted to
    """

    def __init__(
            self,
            message: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(message)


class FXProviderError(FXRateError):
    """
    Raised when the exchange rate provider fails or does not quote a pair.

    Attributes:
        provider: Name of the FX data provider
        reason: Specific reason for failure
        retryable: Whether a retry could succeed (network/server errors)
    """

    def __init__(
            self,
            provider: str,
            reason: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
            retryable: bool = True,
    ) -> None:
        self.provider = provider
        self.reason = reason
        self.retryable = retryable
        super().__init__(
            f"FX provider '{provider}' error: {reason}",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


class FXRateNotQuotedError(FXProviderError):
    """
    Raised when the provider answers but has no rate for the pair.

    Says nothing about provider health: other pairs may still be quoted.
    """

    def __init__(
            self,
            provider: str,
            reason: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        super().__init__(
            provider,
            reason,
            base_currency=base_currency,
            quote_currency=quote_currency,
            retryable=False,
        )


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from portfolio_tracker.services.circuit_breaker import CircuitBreakerOpen  # noqa: E402

__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "SellExceedsLotError",
    "InvalidLotReferenceError",
    "ImmutableFieldError",
    # Not Found
    "NotFoundError",
    "PortfolioNotFoundError",
    "AssetNotFoundError",
    "TransactionNotFoundError",
    "CategoryNotFoundError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "SymbolNotFoundError",
    "RateLimitError",
    # FX Rate
    "FXRateError",
    "FXProviderError",
    "FXRateNotQuotedError",
    # Circuit Breaker
    "CircuitBreakerOpen",
]
