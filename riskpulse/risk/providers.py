"""
Risk level provider implementations.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping, Optional

import requests

from riskpulse.errors import ProviderUnavailable
from .levels import HIGH_LOWER, LOW_UPPER, RiskLevel, RiskLevelProvider

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 1.0


def _retry_after_seconds(value: Optional[str]) -> float:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if not value:
        return DEFAULT_RETRY_AFTER
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


class StaticRiskLevelProvider(RiskLevelProvider):
    """Serves risk levels from a fixed symbol-to-score mapping."""

    def __init__(
        self,
        scores: Mapping[str, float],
        low_upper: float = LOW_UPPER,
        high_lower: float = HIGH_LOWER,
    ):
        self.scores = {k.upper(): float(v) for k, v in scores.items()}
        self.low_upper = low_upper
        self.high_lower = high_lower

    async def fetch_risk_level(self, symbol: str) -> RiskLevel:
        key = symbol.upper()
        if key not in self.scores:
            raise ProviderUnavailable(symbol, "no risk score configured")
        return RiskLevel.from_score(
            key,
            self.scores[key],
            low_upper=self.low_upper,
            high_lower=self.high_lower,
        )


class HttpRiskLevelProvider(RiskLevelProvider):
    """
    Fetches risk levels from an HTTP endpoint.

    Expects ``GET {base_url}/risk/{SYMBOL}`` to return JSON with a
    ``risk_score`` on a 0-100 scale (or ``risk_level`` on a 0-1 scale)
    and optionally ``asset_id``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        api_key: Optional[str] = None,
        low_upper: float = LOW_UPPER,
        high_lower: float = HIGH_LOWER,
    ):
        """
        Initialize HTTP provider.

        Args:
            base_url: Service root URL
            timeout: Request timeout in seconds
            api_key: Optional bearer token
            low_upper: Upper bound of the Low category
            high_lower: Lower bound of the High category
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key
        self.low_upper = low_upper
        self.high_lower = high_lower

    async def fetch_risk_level(self, symbol: str) -> RiskLevel:
        return await asyncio.to_thread(self._fetch_sync, symbol)

    def _fetch_sync(self, symbol: str) -> RiskLevel:
        url = f"{self.base_url}/risk/{symbol.upper()}"
        try:
            response = self._get(url)
        except requests.RequestException as e:
            raise ProviderUnavailable(symbol, f"request failed: {e}") from e

        if not response.ok:
            raise ProviderUnavailable(symbol, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderUnavailable(symbol, "invalid JSON response") from e

        return self._parse(symbol, payload)

    def _get(self, url: str) -> requests.Response:
        """GET with a single retry on rate limiting."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        response = requests.get(url, headers=headers, timeout=self.timeout)

        if response.status_code == 429:
            retry_after = _retry_after_seconds(response.headers.get("Retry-After"))
            logger.debug(f"Rate limited by risk provider, retrying in {retry_after}s")
            time.sleep(min(retry_after, self.timeout))
            response = requests.get(url, headers=headers, timeout=self.timeout)

        return response

    def _parse(self, symbol: str, payload: Any) -> RiskLevel:
        if not isinstance(payload, dict):
            raise ProviderUnavailable(symbol, "unexpected response shape")

        if payload.get("risk_score") is not None:
            raw = payload["risk_score"]
            scale = 1.0
        elif payload.get("risk_level") is not None:
            raw = payload["risk_level"]
            scale = 100.0
        else:
            raise ProviderUnavailable(symbol, "response has no risk score")

        try:
            score = float(raw) * scale
            return RiskLevel.from_score(
                symbol,
                score,
                asset_id=payload.get("asset_id", ""),
                low_upper=self.low_upper,
                high_lower=self.high_lower,
            )
        except (TypeError, ValueError) as e:
            raise ProviderUnavailable(symbol, f"invalid risk score: {raw!r}") from e
