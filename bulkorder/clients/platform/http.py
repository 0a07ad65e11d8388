"""httpx implementation of the platform client."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from bulkorder.clients.platform.base import BasePlatformClient
from bulkorder.config.platform import PlatformApiConfig
from bulkorder.core.exceptions import SubmissionError, TransportError

logger = logging.getLogger(__name__)

_MAX_ERROR_BODY = 500


def _decode(resp: httpx.Response) -> Dict[str, Any]:
    if not resp.content:
        return {}
    try:
        data = resp.json()
    except ValueError:
        return {"raw": resp.text[:_MAX_ERROR_BODY]}
    return data if isinstance(data, dict) else {"data": data}


def _field_errors(body: Dict[str, Any]) -> Dict[str, List[str]]:
    errors = body.get("errors")
    if not isinstance(errors, dict):
        return {}
    return {
        str(path): [str(m) for m in msgs] if isinstance(msgs, (list, tuple)) else [str(msgs)]
        for path, msgs in errors.items()
    }


class HttpPlatformClient(BasePlatformClient):
    """Talks JSON to the platform API. One request per call, no retries."""

    def __init__(
        self,
        config: PlatformApiConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if config.api_token:
            self._headers["Authorization"] = f"Bearer {config.api_token}"

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.config.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, headers=self._headers, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("Platform request timed out: %s %s", method, path)
            raise TransportError(f"Timed out calling {method} {path}", cause=exc) from exc
        except httpx.HTTPError as exc:
            logger.warning("Platform request failed: %s %s: %s", method, path, exc)
            raise TransportError(f"Could not reach the platform for {method} {path}", cause=exc) from exc

        body = _decode(resp)
        if resp.status_code >= 500:
            logger.warning("Platform %s %s returned %s", method, path, resp.status_code)
            raise TransportError(
                f"Platform error {resp.status_code} on {method} {path}",
                details={"status_code": resp.status_code},
            )
        if resp.status_code >= 400:
            message = str(body.get("message") or f"Request rejected with status {resp.status_code}")
            logger.info("Platform rejected %s %s (%s): %s", method, path, resp.status_code, message)
            raise SubmissionError(
                message,
                field_errors=_field_errors(body),
                details={"status_code": resp.status_code},
            )
        return body

    async def edit_order(self, order_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/order-edit/{order_id}", payload)

    async def set_order_status(self, order_id: int, order_status: str) -> Dict[str, Any]:
        return await self._request("POST", f"/set-order-status/{order_id}", {"order_status": order_status})

    async def archive_order(self, order_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/orders/{order_id}")

    async def repeat_order(self, order_id: int, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._request("POST", f"/repeat-order/{order_id}", {"items": items})

    async def mark_repeat_order(self, order_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/mark-repeat-order/{order_id}")

    async def process_payment(self, order_id: int, payment_method_id: str) -> Dict[str, Any]:
        return await self._request(
            "POST", "/process-payment", {"payment_method_id": payment_method_id, "order_id": order_id}
        )

    async def admin_update_order(self, order_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/admin/orders/{order_id}/admin-update", payload)

    async def set_quoted_price(self, order_id: int, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/admin/orders/{order_id}/items/{item_id}/quoted-price", payload)
