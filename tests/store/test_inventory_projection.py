from __future__ import annotations

import pytest
from sqlalchemy import update

from app.db.models.codes import CODE_STATUS_AVAILABLE
from app.db.models.products import Product
from app.store.errors import ProductNotFoundError
from app.store.inventory.projection import InventoryProjection
from tests.store.store_fixtures import _get_product, _list_codes, _seed_product


@pytest.mark.asyncio
async def test_check_integrity_reports_drifted_products(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])
    await _seed_product(session_factory, product_id="p2", codes=["C"])
    async with session_factory.begin() as session:
        await session.execute(update(Product).where(Product.id == "p2").values(stock=4))

    async with session_factory() as session:
        checked, faults = await InventoryProjection.check_integrity(session)
        _, p1_faults = await InventoryProjection.check_integrity(session, product_id="p1")

    assert checked == 2
    assert p1_faults == []
    assert len(faults) == 1
    fault = faults[0]
    assert fault.product_id == "p2"
    assert (fault.stock, fault.available_codes, fault.drift) == (4, 1, 3)


@pytest.mark.asyncio
async def test_rebuild_restores_projection_from_codes_table(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])
    async with session_factory.begin() as session:
        await session.execute(
            update(Product).where(Product.id == "p1").values(stock=9, available_codes=["stale"])
        )

    async with session_factory.begin() as session:
        product = await InventoryProjection.rebuild(session, product_id="p1")

    assert product.stock == 2
    assert sorted(product.available_codes) == ["A", "B"]
    async with session_factory() as session:
        _, faults = await InventoryProjection.check_integrity(session)
    assert faults == []


@pytest.mark.asyncio
async def test_rebuild_unknown_product_raises(session_factory) -> None:
    with pytest.raises(ProductNotFoundError):
        async with session_factory.begin() as session:
            await InventoryProjection.rebuild(session, product_id="missing")


@pytest.mark.asyncio
async def test_backfill_moves_embedded_codes_into_codes_table(session_factory) -> None:
    await _seed_product(
        session_factory,
        product_id="legacy",
        embedded_codes=["X", " Y ", "X", ""],
        stock=7,
    )

    async with session_factory.begin() as session:
        first = await InventoryProjection.backfill_from_embedded(session, product_id="legacy")

    assert (first.imported, first.already_present, first.stock) == (2, 0, 2)
    codes = await _list_codes(session_factory, "legacy")
    assert [code.code for code in codes] == ["X", "Y"]
    assert {code.status for code in codes} == {CODE_STATUS_AVAILABLE}
    product = await _get_product(session_factory, "legacy")
    assert product.stock == 2
    assert sorted(product.available_codes) == ["X", "Y"]

    async with session_factory.begin() as session:
        second = await InventoryProjection.backfill_from_embedded(session, product_id="legacy")
    assert (second.imported, second.already_present, second.stock) == (0, 2, 2)
