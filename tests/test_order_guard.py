import asyncio
import unittest

from app.errors import BackendRejected
from app.services.order_guard import InMemoryOrderGuard, PassthroughOrderGuard
from app.services.result import Result
from app.services.shopify_service import OrderResult


class CountingFactory:
    def __init__(self, *results):
        self.calls = 0
        self._results = list(results)

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0]


ORDER = OrderResult(id="5001", order_number=1001)


class TestInMemoryOrderGuard(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_calls_create_one_order(self):
        guard = InMemoryOrderGuard()
        factory = CountingFactory(Result.ok(ORDER))

        outcomes = await asyncio.gather(
            guard.run_once("4242", factory),
            guard.run_once("4242", factory),
        )

        self.assertEqual(factory.calls, 1)
        self.assertEqual(sorted(dup for _, dup in outcomes), [False, True])
        for result, _ in outcomes:
            self.assertEqual(result.value, ORDER)

    async def test_distinct_invoices_are_independent(self):
        guard = InMemoryOrderGuard()
        factory = CountingFactory(Result.ok(ORDER))
        await guard.run_once("1", factory)
        await guard.run_once("2", factory)
        self.assertEqual(factory.calls, 2)

    async def test_failures_are_not_remembered(self):
        guard = InMemoryOrderGuard()
        factory = CountingFactory(Result.err(BackendRejected("out of stock")), Result.ok(ORDER))

        first, dup_first = await guard.run_once("4242", factory)
        second, dup_second = await guard.run_once("4242", factory)

        self.assertFalse(first.is_ok)
        self.assertTrue(second.is_ok)
        self.assertFalse(dup_first or dup_second)
        self.assertEqual(factory.calls, 2)

    async def test_capacity_evicts_oldest(self):
        guard = InMemoryOrderGuard(capacity=1)
        factory = CountingFactory(Result.ok(ORDER))
        await guard.run_once("a", factory)
        await guard.run_once("b", factory)
        self.assertIsNone(guard.get("a"))
        self.assertEqual(guard.get("b"), ORDER)

    async def test_locks_are_released(self):
        guard = InMemoryOrderGuard()
        await guard.run_once("4242", CountingFactory(Result.ok(ORDER)))
        self.assertEqual(guard._slots, {})


class TestPassthroughOrderGuard(unittest.IsolatedAsyncioTestCase):
    async def test_every_call_runs(self):
        guard = PassthroughOrderGuard()
        factory = CountingFactory(Result.ok(ORDER))
        await asyncio.gather(guard.run_once("4242", factory), guard.run_once("4242", factory))
        self.assertEqual(factory.calls, 2)


if __name__ == "__main__":
    unittest.main()
