from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.codes import CODE_STATUS_AVAILABLE, Code
from app.db.models.products import Product
from app.db.repo.codes_repo import CodesRepo
from app.db.repo.products_repo import ProductsRepo
from app.store.errors import ProductNotFoundError
from app.store.inventory.types import BackfillResult, IntegrityFault

logger = structlog.get_logger(__name__)


def new_code_id() -> str:
    return f"code-{uuid4().hex}"


class InventoryProjection:
    """Keeps Product.stock / Product.available_codes in line with the codes table.

    The codes table is the source of truth: after every mutation that goes
    through this class, ``stock`` equals the number of available codes.
    """

    @staticmethod
    async def append_codes(
        session: AsyncSession,
        *,
        product_id: str,
        codes: Sequence[str],
        now_utc: datetime,
    ) -> Product | None:
        if not codes:
            return None
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            logger.warning("product_projection_missing_product", product_id=product_id, codes=len(codes))
            return None

        product.available_codes = [*(product.available_codes or []), *codes]
        product.stock = int(product.stock or 0) + len(codes)
        product.updated_at = now_utc
        await session.flush()
        return product

    @staticmethod
    async def remove_codes(
        session: AsyncSession,
        *,
        product: Product,
        codes: Sequence[str],
        now_utc: datetime,
    ) -> Product:
        removed = set(codes)
        product.available_codes = [
            value for value in (product.available_codes or []) if value not in removed
        ]
        product.stock = await CodesRepo.count_available(session, product_id=product.id)
        product.updated_at = now_utc
        await session.flush()
        return product

    @staticmethod
    async def remove_code(
        session: AsyncSession,
        *,
        product_id: str,
        code: str,
        now_utc: datetime,
    ) -> Product | None:
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            logger.warning("product_projection_missing_product", product_id=product_id, codes=1)
            return None
        return await InventoryProjection.remove_codes(
            session,
            product=product,
            codes=[code],
            now_utc=now_utc,
        )

    @staticmethod
    async def sync_after_sale(
        session: AsyncSession,
        *,
        product: Product,
        sold_codes: Sequence[str],
        now_utc: datetime,
    ) -> Product:
        product = await InventoryProjection.remove_codes(
            session,
            product=product,
            codes=sold_codes,
            now_utc=now_utc,
        )
        if product.stock != len(product.available_codes):
            # Embedded array carries values the codes table does not know about.
            logger.info(
                "product_embedded_inventory_diverged",
                product_id=product.id,
                stock=product.stock,
                embedded_codes=len(product.available_codes),
            )
        return product

    @staticmethod
    async def rebuild(
        session: AsyncSession,
        *,
        product_id: str,
        now_utc: datetime | None = None,
    ) -> Product:
        now_utc = now_utc or datetime.now(timezone.utc)
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        available = await CodesRepo.list_values(
            session,
            product_id=product_id,
            status=CODE_STATUS_AVAILABLE,
        )
        product.available_codes = available
        product.stock = len(available)
        product.updated_at = now_utc
        await session.flush()
        return product

    @staticmethod
    async def backfill_from_embedded(
        session: AsyncSession,
        *,
        product_id: str,
        now_utc: datetime | None = None,
    ) -> BackfillResult:
        now_utc = now_utc or datetime.now(timezone.utc)
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        embedded: list[str] = []
        seen: set[str] = set()
        for raw in product.available_codes or []:
            value = str(raw).strip()
            if value and value not in seen:
                seen.add(value)
                embedded.append(value)

        existing = await CodesRepo.list_existing_values(
            session,
            product_id=product_id,
            candidates=embedded,
        )
        missing = [value for value in embedded if value not in existing]
        if missing:
            await CodesRepo.create_many(
                session,
                codes=[
                    Code(
                        id=new_code_id(),
                        product_id=product_id,
                        code=value,
                        status=CODE_STATUS_AVAILABLE,
                        created_at=now_utc,
                    )
                    for value in missing
                ],
            )

        product = await InventoryProjection.rebuild(session, product_id=product_id, now_utc=now_utc)
        logger.info(
            "product_embedded_inventory_backfilled",
            product_id=product_id,
            imported=len(missing),
            already_present=len(existing),
            stock=product.stock,
        )
        return BackfillResult(
            product_id=product_id,
            imported=len(missing),
            already_present=len(existing),
            stock=product.stock,
        )

    @staticmethod
    async def check_integrity(
        session: AsyncSession,
        *,
        product_id: str | None = None,
    ) -> tuple[int, list[IntegrityFault]]:
        if product_id is not None:
            product = await ProductsRepo.get_by_id(session, product_id)
            products = [product] if product is not None else []
        else:
            products = await ProductsRepo.list_all(session)

        available_by_product = await CodesRepo.count_available_by_product(session)
        faults = [
            IntegrityFault(
                product_id=product.id,
                stock=int(product.stock or 0),
                available_codes=available_by_product.get(product.id, 0),
                embedded_codes=len(product.available_codes or []),
            )
            for product in products
            if int(product.stock or 0) != available_by_product.get(product.id, 0)
        ]
        return len(products), faults
