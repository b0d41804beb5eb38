from __future__ import annotations

from dataclasses import dataclass, field

from app.db.models.codes import Code


@dataclass(slots=True)
class AddCodesResult:
    product_id: str
    inserted: list[Code] = field(default_factory=list)
    duplicates: int = 0

    @property
    def inserted_values(self) -> list[str]:
        return [code.code for code in self.inserted]


@dataclass(frozen=True, slots=True)
class CodeStats:
    product_id: str
    available: int
    sold: int

    @property
    def total(self) -> int:
        return self.available + self.sold
