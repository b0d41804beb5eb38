from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.codes import CODE_STATUS_AVAILABLE, CODE_STATUS_SOLD, CODE_STATUSES, Code
from app.db.repo.codes_repo import CodesRepo
from app.store.codes.errors import CodeNotFoundError, InvalidCodeStatusError
from app.store.codes.types import AddCodesResult, CodeStats
from app.store.errors import StoreValidationError
from app.store.inventory.projection import InventoryProjection, new_code_id

logger = structlog.get_logger(__name__)


def normalize_code_value(raw: object) -> str:
    return str(raw).strip()


def _normalize_status(status: str | None) -> str | None:
    if status is None:
        return None
    normalized = status.strip().lower()
    if normalized not in CODE_STATUSES:
        raise InvalidCodeStatusError(status)
    return normalized


class CodeStore:
    @staticmethod
    async def add_codes(
        session: AsyncSession,
        *,
        product_id: str,
        codes: Iterable[object],
        now_utc: datetime | None = None,
    ) -> AddCodesResult:
        now_utc = now_utc or datetime.now(timezone.utc)
        product_id = str(product_id).strip()
        if not product_id:
            raise StoreValidationError("productId is required")

        candidates = [normalize_code_value(raw) for raw in codes]
        candidates = [value for value in candidates if value]
        if not candidates:
            raise StoreValidationError("codes must contain at least one non-empty value")

        existing = await CodesRepo.list_existing_values(
            session,
            product_id=product_id,
            candidates=candidates,
        )
        result = AddCodesResult(product_id=product_id)
        accepted: set[str] = set()
        to_insert: list[Code] = []
        for value in candidates:
            if value in existing or value in accepted:
                result.duplicates += 1
                logger.info("code_duplicate_skipped", product_id=product_id, code_prefix=value[:4])
                continue
            accepted.add(value)
            to_insert.append(
                Code(
                    id=new_code_id(),
                    product_id=product_id,
                    code=value,
                    status=CODE_STATUS_AVAILABLE,
                    created_at=now_utc,
                )
            )

        if to_insert:
            result.inserted = await CodesRepo.create_many(session, codes=to_insert)
            raced = len(to_insert) - len(result.inserted)
            if raced:
                result.duplicates += raced
                logger.info("code_duplicate_skipped_concurrent", product_id=product_id, count=raced)

        if result.inserted:
            try:
                async with session.begin_nested():
                    await InventoryProjection.append_codes(
                        session,
                        product_id=product_id,
                        codes=result.inserted_values,
                        now_utc=now_utc,
                    )
            except SQLAlchemyError:
                logger.exception(
                    "product_projection_update_failed",
                    product_id=product_id,
                    inserted=len(result.inserted),
                )

        logger.info(
            "codes_added",
            product_id=product_id,
            inserted=len(result.inserted),
            duplicates=result.duplicates,
        )
        return result

    @staticmethod
    async def list_codes(
        session: AsyncSession,
        *,
        product_id: str | None = None,
        status: str | None = None,
    ) -> list[Code]:
        codes = await CodesRepo.list_codes(
            session,
            product_id=product_id,
            status=_normalize_status(status),
        )
        logger.debug("codes_listed", product_id=product_id, status=status, count=len(codes))
        return codes

    @staticmethod
    async def mark_sold(
        session: AsyncSession,
        *,
        code_ids: Sequence[str],
        sold_to: str | None,
        order_id: str | None,
        now_utc: datetime | None = None,
    ) -> int:
        """Transition available codes to sold; already-sold codes are left as they are."""
        return await CodesRepo.mark_sold(
            session,
            code_ids=code_ids,
            sold_to=sold_to,
            order_id=order_id,
            now_utc=now_utc or datetime.now(timezone.utc),
        )

    @staticmethod
    async def update_code(
        session: AsyncSession,
        *,
        code_id: str,
        status: str | None = None,
        sold_to: str | None = None,
        order_id: str | None = None,
        now_utc: datetime | None = None,
    ) -> Code:
        now_utc = now_utc or datetime.now(timezone.utc)
        next_status = _normalize_status(status) or CODE_STATUS_SOLD

        code = await CodesRepo.get_by_id_for_update(session, code_id)
        if code is None:
            raise CodeNotFoundError(code_id)

        previous_status = code.status
        code.status = next_status
        if next_status == CODE_STATUS_SOLD:
            code.sold_at = now_utc
            code.sold_to = sold_to
            code.order_id = order_id
        else:
            code.sold_at = None
            code.sold_to = None
            code.order_id = None
        await session.flush()

        if previous_status != next_status:
            if next_status == CODE_STATUS_AVAILABLE:
                await InventoryProjection.append_codes(
                    session,
                    product_id=code.product_id,
                    codes=[code.code],
                    now_utc=now_utc,
                )
            else:
                await InventoryProjection.remove_code(
                    session,
                    product_id=code.product_id,
                    code=code.code,
                    now_utc=now_utc,
                )
            logger.info(
                "code_status_changed",
                code_id=code.id,
                product_id=code.product_id,
                previous_status=previous_status,
                next_status=next_status,
            )
        return code

    @staticmethod
    async def stats(session: AsyncSession, *, product_id: str) -> CodeStats:
        counts = await CodesRepo.count_by_status(session, product_id=product_id)
        stats = CodeStats(
            product_id=product_id,
            available=counts.get(CODE_STATUS_AVAILABLE, 0),
            sold=counts.get(CODE_STATUS_SOLD, 0),
        )
        logger.debug(
            "code_stats_computed",
            product_id=product_id,
            available=stats.available,
            sold=stats.sold,
            total=stats.total,
        )
        return stats

    @staticmethod
    async def delete_code(
        session: AsyncSession,
        *,
        code_id: str,
        now_utc: datetime | None = None,
    ) -> Code:
        now_utc = now_utc or datetime.now(timezone.utc)
        code = await CodesRepo.get_by_id_for_update(session, code_id)
        if code is None:
            raise CodeNotFoundError(code_id)

        was_available = code.status == CODE_STATUS_AVAILABLE
        await CodesRepo.delete(session, code=code)
        if was_available:
            await InventoryProjection.remove_code(
                session,
                product_id=code.product_id,
                code=code.code,
                now_utc=now_utc,
            )
        logger.info("code_deleted", code_id=code_id, product_id=code.product_id, was_available=was_available)
        return code
