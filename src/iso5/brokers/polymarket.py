# src/iso5/brokers/polymarket.py
"""
HTTP adapter for a Polymarket-style JSON API.

- GET  {base_url}{price_path}  -> {"price": <float>, ...}
- POST {base_url}{order_path}  body {"side": "LONG"|"SHORT"} -> {"profit": <float>, ...}

Timestamps come from the local clock; the price endpoint does not carry one.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from loguru import logger

from iso5.brokers.base import ExecutionError, TransientFetchError
from iso5.core.types import ExecutionResult, PriceSample, Side

USER_AGENT = "iso5/1.0"


class PolymarketProvider:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.polymarket.com",
        *,
        price_path: str = "/v1/markets/btc-price",
        order_path: str = "/v1/orders",
        request_timeout_s: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.price_path = price_path
        self.order_path = order_path
        self._api_key = api_key
        self._request_timeout_s = float(request_timeout_s)

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> PolymarketProvider:
        section = cfg.get("provider", {})
        api_key = section.get("api_key") or ""
        if not api_key:
            raise ValueError("provider.api_key (POLY_API_KEY) is required for polymarket")
        return cls(
            api_key=api_key,
            base_url=section.get("base_url", "https://api.polymarket.com"),
            price_path=section.get("price_path", "/v1/markets/btc-price"),
            order_path=section.get("order_path", "/v1/orders"),
            request_timeout_s=float(cfg.get("agent", {}).get("call_timeout_s", 10.0)),
        )

    # ------------------------------ HTTP ------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        data = None
        headers = self._headers()
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = Request(f"{self.base_url}{path}", data=data, headers=headers, method=method)
        with urlopen(req, timeout=self._request_timeout_s) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def _fetch_price_sync(self) -> PriceSample:
        try:
            payload = self._request("GET", self.price_path)
            price = float(payload["price"])
            return PriceSample(timestamp=int(time.time()), price=price)
        except (HTTPError, URLError, TimeoutError, OSError) as e:
            raise TransientFetchError(f"price request failed: {e!r}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise TransientFetchError(f"invalid price response: {e!r}") from e

    def _execute_sync(self, side: Side) -> ExecutionResult:
        logger.info(f"[Polymarket] executing {side.value}")
        try:
            payload = self._request("POST", self.order_path, {"side": side.value})
            profit = float(payload["profit"])
            exit_price = payload.get("exit_price")
            return ExecutionResult(
                profit=profit,
                exit_price=float(exit_price) if exit_price is not None else None,
                meta={k: v for k, v in payload.items() if k not in {"profit", "exit_price"}},
            )
        except (HTTPError, URLError, TimeoutError, OSError) as e:
            raise ExecutionError(f"order request failed: {e!r}") from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ExecutionError(f"invalid order response: {e!r}") from e

    # ------------------------------ async API ------------------------------

    async def fetch_price(self) -> PriceSample:
        return await asyncio.to_thread(self._fetch_price_sync)

    async def execute(self, side: Side) -> ExecutionResult:
        return await asyncio.to_thread(self._execute_sync, side)
