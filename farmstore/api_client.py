"""
Async HTTP client for the order API.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from farmstore.config import Config
from farmstore.exceptions import OrderApiError

logger = logging.getLogger(__name__)


class OrdersApiClient:
    """
    Client for the /orders endpoints.

    Every failure, whether transport-level or a {success: false} envelope,
    is raised as OrderApiError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or Config.API_TIMEOUT_SECONDS)
        )

    async def __aenter__(self) -> "OrdersApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Order API request failed: {method} {path}: {type(e).__name__}: {e}")
            raise OrderApiError(f"Could not reach order service: {e}")

        try:
            body = response.json()
        except ValueError:
            raise OrderApiError(
                f"Unexpected response from order service (HTTP {response.status_code})",
                status_code=response.status_code
            )

        if response.is_error or not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise OrderApiError(
                message or f"Order service returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        return body.get("data")

    async def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Place an order; returns {orderId, _id}"""
        return await self._request("POST", "/orders", json=payload)

    async def list_orders(self) -> List[Dict[str, Any]]:
        """All orders, newest first"""
        return await self._request("GET", "/orders")

    async def update_order_status(self, record_id: str, status: str) -> Dict[str, Any]:
        """Change an order's status; returns the updated order"""
        return await self._request("PUT", f"/orders/{record_id}/status", json={"status": status})
