from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from app.db.models.codes import CODE_STATUS_SOLD
from app.store.codes.service import CodeStore
from app.store.fulfillment.errors import InsufficientCodesError, OutOfStockError
from app.store.fulfillment.service import FulfillmentService
from app.store.fulfillment.types import OrderLine
from app.store.inventory.projection import InventoryProjection
from tests.store.store_fixtures import _get_product, _list_codes, _list_orders, _seed_product


@pytest.mark.asyncio
async def test_parallel_confirms_split_codes_without_overlap(pg_session_factory) -> None:
    await _seed_product(pg_session_factory, product_id="p1", codes=[f"PG-{index:02d}" for index in range(20)])
    service = FulfillmentService(pg_session_factory, max_attempts=5)

    outcomes = await asyncio.gather(
        *(service.confirm_order(product_id="p1", user_id=f"u{index}", quantity=3) for index in range(10)),
        return_exceptions=True,
    )

    successes = [outcome for outcome in outcomes if not isinstance(outcome, BaseException)]
    failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
    assert len(successes) == 6
    assert all(isinstance(failure, InsufficientCodesError) for failure in failures)

    delivered = [value for result in successes for value in result.delivery_codes["p1"]]
    assert len(delivered) == len(set(delivered)) == 18

    codes = await _list_codes(pg_session_factory, "p1")
    assert sum(code.status == CODE_STATUS_SOLD for code in codes) == 18
    assert (await _get_product(pg_session_factory, "p1")).stock == 2

    async with pg_session_factory() as session:
        _, faults = await InventoryProjection.check_integrity(session)
        stats = await CodeStore.stats(session, product_id="p1")
    assert faults == []
    assert (stats.available, stats.sold) == (2, 18)


@pytest.mark.asyncio
async def test_parallel_multi_product_orders_do_not_deadlock(pg_session_factory) -> None:
    await _seed_product(pg_session_factory, product_id="a", codes=[f"A-{index}" for index in range(5)])
    await _seed_product(pg_session_factory, product_id="b", codes=[f"B-{index}" for index in range(5)])
    service = FulfillmentService(pg_session_factory, timeout_seconds=5.0)

    def _items(first: str, second: str) -> list[OrderLine]:
        return [OrderLine(product_id=first, quantity=1), OrderLine(product_id=second, quantity=1)]

    outcomes = await asyncio.gather(
        *(
            service.place_order(
                user_id=f"u{index}",
                items=_items("a", "b") if index % 2 else _items("b", "a"),
                total=Decimal("20"),
            )
            for index in range(7)
        ),
        return_exceptions=True,
    )

    successes = [outcome for outcome in outcomes if not isinstance(outcome, BaseException)]
    failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
    assert len(successes) == 5
    assert all(isinstance(failure, OutOfStockError) for failure in failures)
    assert len(await _list_orders(pg_session_factory)) == 5
    assert (await _get_product(pg_session_factory, "a")).stock == 0
    assert (await _get_product(pg_session_factory, "b")).stock == 0
