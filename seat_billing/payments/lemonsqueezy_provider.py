from __future__ import annotations
import asyncio
from typing import Optional, Dict, Any

import httpx
import structlog

from seat_billing.engine.errors import BillingAPIError
from seat_billing.payments.types import UsageAction

log = structlog.get_logger(__name__)

JSON_API = "application/vnd.api+json"
DEFAULT_BASE_URL = "https://api.lemonsqueezy.com/v1"


def _error_detail(response: httpx.Response) -> str:
    """
    First JSON:API error detail if the body carries one, else the raw text.
    """
    try:
        payload = response.json()
    except ValueError:
        return response.text
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        detail = errors[0].get("detail") or errors[0].get("title")
        if detail:
            return str(detail)
    return response.text


class LemonSqueezyProvider:
    """
    LemonSqueezy subscription billing over its JSON:API REST interface.

    - HTTP error responses raise BillingAPIError right away (never retried).
    - Transport failures (timeouts, refused connections) are retried up to
      `max_retries` attempts in total, sleeping `retry_delay * attempt` between
      them. The default of one attempt means callers see failures immediately.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("LemonSqueezy API key is required")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport

    # --- http plumbing ---

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": JSON_API,
            "Content-Type": JSON_API,
            "Authorization": f"Bearer {self.api_key}",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        last_error: Optional[httpx.TransportError] = None

        for attempt in range(1, self.max_retries + 1):
            log.debug("lemonsqueezy_request", method=method, path=path, attempt=attempt)
            try:
                async with self._client() as client:
                    response = await client.request(method, path, json=body)
            except httpx.TransportError as e:
                last_error = e
                log.warning(
                    "lemonsqueezy_transport_error",
                    method=method,
                    path=path,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e),
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * attempt)
                continue

            if response.is_error:
                detail = _error_detail(response)
                log.error(
                    "lemonsqueezy_error_response",
                    method=method,
                    path=path,
                    status=response.status_code,
                    error=detail,
                )
                raise BillingAPIError(
                    f"LemonSqueezy API error ({response.status_code}): {detail}",
                    status=response.status_code,
                    body=detail,
                )

            log.debug("lemonsqueezy_response", method=method, path=path, status=response.status_code)
            try:
                return response.json()
            except ValueError:
                raise BillingAPIError(
                    "LemonSqueezy returned a non-JSON response",
                    status=response.status_code,
                    body=response.text,
                )

        raise BillingAPIError(
            f"LemonSqueezy request {method} {path} failed after {self.max_retries} attempt(s): {last_error}",
            body=str(last_error),
        )

    # --- subscriptions ---

    async def get_subscription(self, external_subscription_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/subscriptions/{external_subscription_id}")

    # --- usage records (usage-based) ---

    async def create_usage_record(
        self, subscription_item_id: str, *, quantity: int, action: UsageAction = "set"
    ) -> Dict[str, Any]:
        body = {
            "data": {
                "type": "usage-records",
                "attributes": {
                    "quantity": quantity,
                    "action": action,
                },
                "relationships": {
                    "subscription-item": {
                        "data": {"type": "subscription-items", "id": str(subscription_item_id)}
                    }
                },
            }
        }
        return await self._request("POST", "/usage-records", body)

    # --- subscription items (quantity-based) ---

    async def update_subscription_item(
        self, subscription_item_id: str, *, quantity: int, invoice_immediately: bool = True
    ) -> Dict[str, Any]:
        body = {
            "data": {
                "type": "subscription-items",
                "id": str(subscription_item_id),
                "attributes": {
                    "quantity": quantity,
                    "invoice_immediately": invoice_immediately,
                },
            }
        }
        return await self._request("PATCH", f"/subscription-items/{subscription_item_id}", body)
