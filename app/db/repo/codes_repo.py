from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.codes import CODE_STATUS_AVAILABLE, CODE_STATUS_SOLD, Code

INSERT_CHUNK_SIZE = 500


class CodesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, code_id: str) -> Code | None:
        return await session.get(Code, code_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, code_id: str) -> Code | None:
        stmt = select(Code).where(Code.id == code_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_existing_values(
        session: AsyncSession,
        *,
        product_id: str,
        candidates: Sequence[str],
    ) -> set[str]:
        if not candidates:
            return set()
        stmt = select(Code.code).where(
            Code.product_id == product_id,
            Code.code.in_(tuple(set(candidates))),
        )
        result = await session.execute(stmt)
        return {str(value) for value in result.scalars().all()}

    @staticmethod
    async def list_values(
        session: AsyncSession,
        *,
        product_id: str,
        status: str | None = None,
    ) -> list[str]:
        stmt = (
            select(Code.code)
            .where(Code.product_id == product_id)
            .order_by(Code.created_at.asc(), Code.id.asc())
        )
        if status is not None:
            stmt = stmt.where(Code.status == status)
        result = await session.execute(stmt)
        return [str(value) for value in result.scalars().all()]

    @staticmethod
    async def create_many(session: AsyncSession, *, codes: Sequence[Code]) -> list[Code]:
        """Insert codes, skipping values another writer already stored for the product."""
        if not codes:
            return []
        insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
        inserted_ids: set[str] = set()
        for start in range(0, len(codes), INSERT_CHUNK_SIZE):
            chunk = codes[start : start + INSERT_CHUNK_SIZE]
            stmt = (
                insert(Code)
                .values(
                    [
                        {
                            "id": code.id,
                            "product_id": code.product_id,
                            "code": code.code,
                            "status": code.status,
                            "created_at": code.created_at,
                        }
                        for code in chunk
                    ]
                )
                .on_conflict_do_nothing(index_elements=[Code.product_id, Code.code])
                .returning(Code.id)
            )
            result = await session.execute(stmt)
            inserted_ids.update(result.scalars().all())
        return [code for code in codes if code.id in inserted_ids]

    @staticmethod
    async def list_codes(
        session: AsyncSession,
        *,
        product_id: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[Code]:
        stmt = select(Code).order_by(Code.created_at.desc(), Code.id.desc())
        if product_id is not None:
            stmt = stmt.where(Code.product_id == product_id)
        if status is not None:
            stmt = stmt.where(Code.status == status)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def select_available_for_update(
        session: AsyncSession,
        *,
        product_id: str,
        limit: int,
    ) -> list[Code]:
        stmt = (
            select(Code)
            .where(
                Code.product_id == product_id,
                Code.status == CODE_STATUS_AVAILABLE,
            )
            .order_by(Code.created_at.asc(), Code.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_sold(
        session: AsyncSession,
        *,
        code_ids: Sequence[str],
        sold_to: str | None,
        order_id: str | None,
        now_utc: datetime,
    ) -> int:
        if not code_ids:
            return 0
        stmt = (
            update(Code)
            .where(
                Code.id.in_(tuple(code_ids)),
                Code.status == CODE_STATUS_AVAILABLE,
            )
            .values(
                status=CODE_STATUS_SOLD,
                sold_at=now_utc,
                sold_to=sold_to,
                order_id=order_id,
            )
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def count_by_status(session: AsyncSession, *, product_id: str) -> dict[str, int]:
        stmt = (
            select(Code.status, func.count(Code.id))
            .where(Code.product_id == product_id)
            .group_by(Code.status)
        )
        result = await session.execute(stmt)
        return {str(status): int(count) for status, count in result.all()}

    @staticmethod
    async def count_available(session: AsyncSession, *, product_id: str) -> int:
        stmt = select(func.count(Code.id)).where(
            Code.product_id == product_id,
            Code.status == CODE_STATUS_AVAILABLE,
        )
        return int((await session.scalar(stmt)) or 0)

    @staticmethod
    async def count_available_by_product(session: AsyncSession) -> dict[str, int]:
        stmt = (
            select(Code.product_id, func.count(Code.id))
            .where(Code.status == CODE_STATUS_AVAILABLE)
            .group_by(Code.product_id)
        )
        result = await session.execute(stmt)
        return {str(product_id): int(count) for product_id, count in result.all()}

    @staticmethod
    async def list_by_order(session: AsyncSession, *, order_id: str) -> list[Code]:
        stmt = select(Code).where(Code.order_id == order_id).order_by(Code.product_id, Code.code)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete(session: AsyncSession, *, code: Code) -> None:
        await session.delete(code)
        await session.flush()
