from __future__ import annotations

import pytest

from app.db.models.codes import CODE_STATUS_AVAILABLE, CODE_STATUS_SOLD
from app.store.codes.errors import CodeNotFoundError, InvalidCodeStatusError
from app.store.codes.service import CodeStore
from app.store.errors import StoreValidationError
from tests.store.store_fixtures import _get_product, _list_codes, _seed_product


@pytest.mark.asyncio
async def test_add_codes_skips_existing_and_repeated_values(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])

    async with session_factory.begin() as session:
        result = await CodeStore.add_codes(session, product_id="p1", codes=["B", " C ", "", "C"])

    assert result.inserted_values == ["C"]
    assert result.duplicates == 2

    codes = await _list_codes(session_factory, "p1")
    assert [code.code for code in codes] == ["A", "B", "C"]
    assert {code.status for code in codes} == {CODE_STATUS_AVAILABLE}

    product = await _get_product(session_factory, "p1")
    assert product.stock == 3
    assert sorted(product.available_codes) == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_add_codes_is_idempotent_for_the_same_batch(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])

    async with session_factory.begin() as session:
        result = await CodeStore.add_codes(session, product_id="p1", codes=["A", "B"])

    assert result.inserted == []
    assert result.duplicates == 2
    product = await _get_product(session_factory, "p1")
    assert product.stock == 2


@pytest.mark.asyncio
async def test_same_code_value_is_allowed_for_different_products(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["SHARED"])
    await _seed_product(session_factory, product_id="p2", codes=["SHARED"])

    assert len(await _list_codes(session_factory, "p1")) == 1
    assert len(await _list_codes(session_factory, "p2")) == 1


@pytest.mark.asyncio
async def test_add_codes_rejects_empty_batch(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1")

    with pytest.raises(StoreValidationError):
        async with session_factory.begin() as session:
            await CodeStore.add_codes(session, product_id="p1", codes=["  ", ""])


@pytest.mark.asyncio
async def test_add_codes_for_unknown_product_keeps_codes_without_projection(session_factory) -> None:
    async with session_factory.begin() as session:
        result = await CodeStore.add_codes(session, product_id="ghost", codes=["A"])

    assert result.inserted_values == ["A"]
    assert [code.code for code in await _list_codes(session_factory, "ghost")] == ["A"]


@pytest.mark.asyncio
async def test_stats_counts_by_status(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B", "C"])
    codes = await _list_codes(session_factory, "p1")

    async with session_factory.begin() as session:
        updated = await CodeStore.mark_sold(session, code_ids=[codes[0].id], sold_to="u1", order_id="ord-1")
    assert updated == 1

    async with session_factory() as session:
        stats = await CodeStore.stats(session, product_id="p1")
        empty = await CodeStore.stats(session, product_id="nothing")

    assert (stats.available, stats.sold, stats.total) == (2, 1, 3)
    assert (empty.available, empty.sold, empty.total) == (0, 0, 0)


@pytest.mark.asyncio
async def test_mark_sold_leaves_already_sold_codes_untouched(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A"])
    code_id = (await _list_codes(session_factory, "p1"))[0].id

    async with session_factory.begin() as session:
        first = await CodeStore.mark_sold(session, code_ids=[code_id], sold_to="u1", order_id="ord-1")
    async with session_factory.begin() as session:
        second = await CodeStore.mark_sold(session, code_ids=[code_id], sold_to="u2", order_id="ord-2")

    assert (first, second) == (1, 0)
    code = (await _list_codes(session_factory, "p1"))[0]
    assert code.sold_to == "u1"
    assert code.order_id == "ord-1"


@pytest.mark.asyncio
async def test_list_codes_filters_by_product_and_status(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])
    await _seed_product(session_factory, product_id="p2", codes=["C"])
    code_id = (await _list_codes(session_factory, "p1"))[0].id
    async with session_factory.begin() as session:
        await CodeStore.update_code(session, code_id=code_id, status="sold")

    async with session_factory() as session:
        all_codes = await CodeStore.list_codes(session)
        p1_available = await CodeStore.list_codes(session, product_id="p1", status="AVAILABLE")

    assert len(all_codes) == 3
    assert [code.code for code in p1_available] == ["B"]

    with pytest.raises(InvalidCodeStatusError):
        async with session_factory() as session:
            await CodeStore.list_codes(session, status="reserved")


@pytest.mark.asyncio
async def test_update_code_moves_code_between_statuses_and_resyncs_stock(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])
    code_id = (await _list_codes(session_factory, "p1"))[0].id

    async with session_factory.begin() as session:
        code = await CodeStore.update_code(session, code_id=code_id, sold_to="u9", order_id="ord-9")
    assert code.status == CODE_STATUS_SOLD
    assert code.sold_at is not None

    product = await _get_product(session_factory, "p1")
    assert product.stock == 1
    assert product.available_codes == ["B"]

    async with session_factory.begin() as session:
        code = await CodeStore.update_code(session, code_id=code_id, status="available")
    assert code.status == CODE_STATUS_AVAILABLE
    assert (code.sold_at, code.sold_to, code.order_id) == (None, None, None)

    product = await _get_product(session_factory, "p1")
    assert product.stock == 2
    assert sorted(product.available_codes) == ["A", "B"]


@pytest.mark.asyncio
async def test_update_code_rejects_unknown_code_and_status(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A"])
    code_id = (await _list_codes(session_factory, "p1"))[0].id

    with pytest.raises(CodeNotFoundError):
        async with session_factory.begin() as session:
            await CodeStore.update_code(session, code_id="code-missing")

    with pytest.raises(InvalidCodeStatusError):
        async with session_factory.begin() as session:
            await CodeStore.update_code(session, code_id=code_id, status="refunded")

    product = await _get_product(session_factory, "p1")
    assert product.stock == 1


@pytest.mark.asyncio
async def test_delete_code_only_touches_stock_for_available_codes(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])
    codes = await _list_codes(session_factory, "p1")

    async with session_factory.begin() as session:
        await CodeStore.update_code(session, code_id=codes[0].id)
    async with session_factory.begin() as session:
        await CodeStore.delete_code(session, code_id=codes[0].id)

    product = await _get_product(session_factory, "p1")
    assert product.stock == 1

    async with session_factory.begin() as session:
        deleted = await CodeStore.delete_code(session, code_id=codes[1].id)
    assert deleted.code == "B"

    product = await _get_product(session_factory, "p1")
    assert product.stock == 0
    assert product.available_codes == []
    assert await _list_codes(session_factory, "p1") == []

    with pytest.raises(CodeNotFoundError):
        async with session_factory.begin() as session:
            await CodeStore.delete_code(session, code_id=codes[1].id)


@pytest.mark.asyncio
async def test_add_codes_counts_values_stored_after_the_duplicate_check(session_factory, monkeypatch) -> None:
    from app.db.repo.codes_repo import CodesRepo

    await _seed_product(session_factory, product_id="p1", codes=["A"])

    async def _nothing_seen(session, *, product_id, candidates):  # noqa: ARG001
        return set()

    monkeypatch.setattr(CodesRepo, "list_existing_values", staticmethod(_nothing_seen))

    async with session_factory.begin() as session:
        result = await CodeStore.add_codes(session, product_id="p1", codes=["A", "C"])

    assert result.inserted_values == ["C"]
    assert result.duplicates == 1
    codes = await _list_codes(session_factory, "p1")
    assert [code.code for code in codes] == ["A", "C"]
    product = await _get_product(session_factory, "p1")
    assert product.stock == 2
    assert sorted(product.available_codes) == ["A", "C"]
