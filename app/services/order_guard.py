"""
Idempotency hook for order creation.

Polling and webhooks can both see the same invoice as Paid. The guard
serializes order creation per invoice id and hands later callers the order
the first one created. State lives in this process only.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Tuple

from app.logging_config import get_logger
from app.services.result import Result
from app.services.shopify_service import OrderResult

logger = get_logger(__name__)

OrderFactory = Callable[[], Awaitable[Result[OrderResult]]]


class OrderGuard(ABC):
    @abstractmethod
    async def run_once(self, key: str, factory: OrderFactory) -> Tuple[Result[OrderResult], bool]:
        """Run ``factory`` unless ``key`` already produced an order.

        Returns the result and whether it is a previously created order.
        """


class PassthroughOrderGuard(OrderGuard):
    """No deduplication: every call creates an order."""

    async def run_once(self, key: str, factory: OrderFactory) -> Tuple[Result[OrderResult], bool]:
        return await factory(), False


class _Slot:
    __slots__ = ("lock", "waiters")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.waiters = 0


class InMemoryOrderGuard(OrderGuard):
    def __init__(self, capacity: int = 1024):
        self.capacity = capacity
        self._slots: Dict[str, _Slot] = {}
        self._completed: "OrderedDict[str, OrderResult]" = OrderedDict()

    def _remember(self, key: str, order: OrderResult) -> None:
        self._completed[key] = order
        self._completed.move_to_end(key)
        while len(self._completed) > self.capacity:
            self._completed.popitem(last=False)

    def get(self, key: str):
        return self._completed.get(key)

    async def run_once(self, key: str, factory: OrderFactory) -> Tuple[Result[OrderResult], bool]:
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        slot.waiters += 1
        try:
            async with slot.lock:
                existing = self._completed.get(key)
                if existing is not None:
                    self._completed.move_to_end(key)
                    logger.info("order_already_created", invoice_id=key, order_id=existing.id)
                    return Result.ok(existing), True
                result = await factory()
                # Failed attempts are not remembered so a later trigger can retry.
                if result.is_ok:
                    self._remember(key, result.value)
                return result, False
        finally:
            slot.waiters -= 1
            if slot.waiters == 0:
                self._slots.pop(key, None)
