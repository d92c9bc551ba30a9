"""Exception hierarchy shared by the price engine, the ledger and the API."""

from __future__ import annotations


class GoldfolioError(Exception):
    """Base class for all application errors."""


class ConfigError(GoldfolioError):
    """An environment setting is missing or malformed."""


class PriceFetchError(GoldfolioError):
    """The upstream price feed could not produce a usable price.

    Covers transport failures, non-2xx responses, undecodable bodies and
    prices that are missing, non-numeric or not strictly positive.
    """


class PriceUnavailableError(GoldfolioError):
    """No price has been observed yet."""


class ValidationError(GoldfolioError):
    """Ledger input was rejected before reaching storage."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class AuthenticationRequired(GoldfolioError):
    """The request carries no resolved owner identity."""

