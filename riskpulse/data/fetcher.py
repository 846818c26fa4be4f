"""
Yahoo Finance market data fetcher.
"""

import logging
import math
from typing import Optional

import yfinance as yf

from riskpulse.errors import PriceUnavailable

logger = logging.getLogger(__name__)

# Yahoo tickers for the macro series it carries. M2 is published by FRED
# and has to be supplied by the caller.
MACRO_TICKERS: dict[str, str] = {
    "VIX": "^VIX",
    "DXY": "DX-Y.NYB",
}


class MarketDataFetcher:
    """Fetches asset prices and macro history from Yahoo Finance."""

    def __init__(self, quote_currency: Optional[str] = "USD"):
        """
        Initialize fetcher.

        Args:
            quote_currency: Appended to bare crypto symbols ("BTC" -> "BTC-USD").
                None passes symbols through unchanged.
        """
        self.quote_currency = quote_currency

    def to_ticker(self, symbol: str) -> str:
        """Convert an asset symbol to its Yahoo Finance ticker."""
        symbol = symbol.upper()
        if self.quote_currency and "-" not in symbol and not symbol.startswith("^"):
            return f"{symbol}-{self.quote_currency}"
        return symbol

    def get_current_price(self, symbol: str) -> float:
        """
        Fetch the current market price for an asset.

        Args:
            symbol: Asset symbol (e.g., "BTC")

        Returns:
            Current price

        Raises:
            PriceUnavailable: If no positive price is available
        """
        ticker = self.to_ticker(symbol)
        try:
            info = yf.Ticker(ticker).info
        except Exception as e:
            logger.warning(f"Price lookup failed for {ticker}: {e}")
            raise PriceUnavailable(symbol) from e

        if not info:
            raise PriceUnavailable(symbol)

        # Use regularMarketPrice if available, otherwise fall back to previousClose
        price = info.get("regularMarketPrice")
        if price is None:
            price = info.get("previousClose")

        if price is None or not math.isfinite(price) or price <= 0:
            raise PriceUnavailable(symbol, price)

        return float(price)

    def get_macro_series(
        self, indicator_id: str, days: int = 365
    ) -> tuple[list[float], float]:
        """
        Fetch history and latest value for a macro indicator.

        The most recent close is returned as the current value and is not
        part of the returned history.

        Args:
            indicator_id: Macro indicator id (e.g., "VIX")
            days: Number of days of history to fetch

        Returns:
            Tuple of (history, current value)

        Raises:
            ValueError: If the indicator is not on Yahoo Finance or has no data
        """
        ticker = MACRO_TICKERS.get(indicator_id.upper())
        if ticker is None:
            raise ValueError(f"No Yahoo Finance ticker for indicator: {indicator_id}")

        hist = yf.Ticker(ticker).history(period=f"{days}d")
        if hist.empty:
            raise ValueError(f"No historical data available: {indicator_id}")

        closes = hist["Close"].dropna().tolist()
        if not closes:
            raise ValueError(f"No historical data available: {indicator_id}")

        return closes[:-1], float(closes[-1])

    def get_macro_snapshot(
        self, indicator_ids: list[str], days: int = 365
    ) -> dict[str, tuple[list[float], float]]:
        """
        Fetch several macro series, skipping those that fail.

        Returns:
            Dictionary mapping indicator id to (history, current value)
        """
        results = {}
        for indicator_id in indicator_ids:
            try:
                results[indicator_id] = self.get_macro_series(indicator_id, days=days)
            except ValueError as e:
                logger.info(f"Skipping {indicator_id}: {e}")
                continue
        return results
