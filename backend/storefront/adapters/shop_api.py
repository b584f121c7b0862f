"""
Shop API Client

HTTP client for the shop REST API: the server-side cart of authenticated
users, coupon validation and order creation. Every call is a plain
request/response; nothing is retried here.
"""

from typing import Any, Iterable, Optional

import httpx

from storefront.config import settings
from storefront.schemas.cart_schema import Cart, size_to_segment
from storefront.schemas.checkout_schema import AppliedCoupon, OrderPayload
from storefront.utils.log import get_logger

log = get_logger("storefront.shop_api", "SHOP-API")


class RemoteCartError(Exception):
    """A shop API call failed: transport error, timeout or unsuccessful response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ShopApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            base_url: Base URL of the shop API (defaults to settings.API_BASE_URL)
            timeout: Per-request timeout in seconds
            http_client: Pre-configured client, e.g. FastAPI's TestClient
        """
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.REMOTE_API_TIMEOUT_SECONDS
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.Client(
            base_url=self.base_url, timeout=self.timeout
        )

    def close(self) -> None:
        if self._owns_client:
            self._http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("detail") or body)
        return str(body)

    def _request(self, method: str, path: str, body: Optional[dict] = None) -> dict[str, Any]:
        try:
            response = self._http_client.request(
                method, path, json=body, headers={"Accept": "application/json"}
            )
        except httpx.TimeoutException as e:
            log.error("%s %s timed out", method, path)
            raise RemoteCartError(f"Request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            log.error("%s %s failed: %s", method, path, e)
            raise RemoteCartError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            message = self._error_message(response)
            log.error("Request failed: %s - %s", response.status_code, message)
            raise RemoteCartError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            log.error("Invalid response body from %s %s", method, path)
            raise RemoteCartError(
                f"Invalid response body from {method} {path}", status_code=response.status_code
            ) from e
        if isinstance(payload, dict) and payload.get("success") is False:
            raise RemoteCartError(
                str(payload.get("message") or "Request was not successful"),
                status_code=response.status_code,
            )
        return payload

    def _cart(self, payload: dict) -> Cart:
        return Cart.model_validate(payload.get("data") or {})

    # ==================== Cart APIs ====================

    def fetch_cart(self, owner_id: str) -> Cart:
        return self._cart(self._request("GET", f"/api/shop/cart/get/{owner_id}"))

    def add_to_cart(
        self, owner_id: str, product_id: str, size: Optional[str], quantity: int
    ) -> Cart:
        return self._cart(
            self._request(
                "POST",
                "/api/shop/cart/add",
                body={
                    "ownerId": owner_id,
                    "productId": product_id,
                    "size": size,
                    "quantity": quantity,
                },
            )
        )

    def update_cart_quantity(
        self, owner_id: str, product_id: str, size: Optional[str], quantity: int
    ) -> Cart:
        return self._cart(
            self._request(
                "PUT",
                "/api/shop/cart/update-cart",
                body={
                    "ownerId": owner_id,
                    "productId": product_id,
                    "size": size,
                    "quantity": quantity,
                },
            )
        )

    def remove_from_cart(self, owner_id: str, product_id: str, size: Optional[str]) -> Cart:
        return self._cart(
            self._request(
                "DELETE", f"/api/shop/cart/{owner_id}/{product_id}/{size_to_segment(size)}"
            )
        )

    # ==================== Coupon APIs ====================

    def validate_coupon(
        self,
        code: str,
        owner_id: Optional[str],
        order_amount: float,
        categories: Iterable[str] = (),
    ) -> AppliedCoupon:
        payload = self._request(
            "POST",
            "/api/shop/coupon/validate",
            body={
                "code": code,
                "ownerId": owner_id,
                "orderAmount": order_amount,
                "categories": [c for c in categories if c],
            },
        )
        data = payload.get("data") or {}
        return AppliedCoupon(
            code=data.get("coupon", {}).get("code", code.upper()),
            discount_amount=data.get("discount", {}).get("amount", 0),
        )

    # ==================== Order APIs ====================

    def create_order(self, payload: OrderPayload) -> dict:
        """Hand the assembled order to the server; returns {success, approvalURL, orderId}."""
        return self._request("POST", "/api/shop/order/create", body=payload.to_wire())
