"""Sheet size catalog for gangsheet.

The catalog is static: loaded at import time and never mutated. Every
sheet is 22 inches wide (the transfer film roll width) and sold in a
fixed set of lengths.
"""

from __future__ import annotations

from typing import TypedDict

from pydantic import BaseModel, Field


class SheetSize(BaseModel, frozen=True):
    """A purchasable sheet size.

    Attributes:
        id: Unique identifier (e.g. "22x12").
        label: Display label (e.g. '22" x 12"').
        width_in: Width in inches.
        height_in: Height in inches.
    """

    id: str = Field(..., min_length=1)
    label: str
    width_in: float = Field(..., gt=0)
    height_in: float = Field(..., gt=0)

    @property
    def area_in(self) -> float:
        """Sheet area in square inches."""
        return self.width_in * self.height_in


class PriceBand(TypedDict):
    """Unit price for a quantity range.

    `to_qty` is inclusive; None means open-ended.
    """

    from_qty: int
    to_qty: int | None
    unit_price: float


SHEET_SIZES: tuple[SheetSize, ...] = (
    SheetSize(id="22x12", label='22" x 12"', width_in=22, height_in=12),
    SheetSize(id="22x24", label='22" x 24"', width_in=22, height_in=24),
    SheetSize(id="22x60", label='22" x 60"', width_in=22, height_in=60),
    SheetSize(id="22x120", label='22" x 120"', width_in=22, height_in=120),
    SheetSize(id="22x180", label='22" x 180"', width_in=22, height_in=180),
)

# Price bands per sheet size, USD per sheet
PRICE_BANDS: dict[str, tuple[PriceBand, ...]] = {
    "22x12": (
        {"from_qty": 1, "to_qty": 9, "unit_price": 14.27},
        {"from_qty": 10, "to_qty": None, "unit_price": 11.76},
    ),
    "22x24": (
        {"from_qty": 1, "to_qty": 9, "unit_price": 28.54},
        {"from_qty": 10, "to_qty": None, "unit_price": 23.52},
    ),
    "22x60": (
        {"from_qty": 1, "to_qty": 9, "unit_price": 71.35},
        {"from_qty": 10, "to_qty": None, "unit_price": 58.80},
    ),
    "22x120": (
        {"from_qty": 1, "to_qty": 9, "unit_price": 142.70},
        {"from_qty": 10, "to_qty": None, "unit_price": 117.60},
    ),
    "22x180": (
        {"from_qty": 1, "to_qty": 9, "unit_price": 214.05},
        {"from_qty": 10, "to_qty": None, "unit_price": 176.40},
    ),
}

_BY_ID = {size.id: size for size in SHEET_SIZES}


def get_sheet_size(sheet_size_id: str | None) -> SheetSize | None:
    """Look up a sheet size by id, or None if unknown."""
    if sheet_size_id is None:
        return None
    return _BY_ID.get(sheet_size_id)


def get_price_bands(sheet_size_id: str) -> tuple[PriceBand, ...]:
    """Price bands for a sheet size (empty if unknown)."""
    return PRICE_BANDS.get(sheet_size_id, ())
