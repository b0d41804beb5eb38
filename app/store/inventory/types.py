from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class IntegrityFault:
    product_id: str
    stock: int
    available_codes: int
    embedded_codes: int

    @property
    def drift(self) -> int:
        return self.stock - self.available_codes


@dataclass(slots=True)
class BackfillResult:
    product_id: str
    imported: int
    already_present: int
    stock: int
