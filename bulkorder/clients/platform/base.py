from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class BasePlatformClient(ABC):
    """The ordering platform's order endpoints.

    Every method returns the decoded JSON response. Rejections raise
    ``SubmissionError``; timeouts, connection failures and 5xx raise
    ``TransportError``.
    """

    @abstractmethod
    async def edit_order(self, order_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def set_order_status(self, order_id: int, order_status: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def archive_order(self, order_id: int) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def repeat_order(self, order_id: int, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def mark_repeat_order(self, order_id: int) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def process_payment(self, order_id: int, payment_method_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def admin_update_order(self, order_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def set_quoted_price(self, order_id: int, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

