"""Sheet pricing lookups for gangsheet.

Pure functions over the static band table in gangsheet.catalog. The
layout engine only reads these to show informational totals; nothing
here has side effects.

Note: Quantities above the last band's upper limit use the last band's
price, so an open-ended table and a closed one behave the same.
"""

from __future__ import annotations

from gangsheet.catalog import PriceBand, get_price_bands


def get_effective_band(sheet_size_id: str, quantity: int) -> PriceBand | None:
    """Get the price band that applies to a quantity.

    Args:
        sheet_size_id: Sheet size identifier.
        quantity: Number of sheets.

    Returns:
        A copy of the matching band, the last band if the quantity exceeds
        every band, or None if the sheet size has no pricing.
    """
    bands = get_price_bands(sheet_size_id)
    if not bands:
        return None

    for band in bands:
        upper = band["to_qty"]
        if quantity >= band["from_qty"] and (upper is None or quantity <= upper):
            return PriceBand(**band)

    return PriceBand(**bands[-1])


def get_unit_price(sheet_size_id: str, quantity: int) -> float | None:
    """Get the per-sheet price for a sheet size and quantity.

    Args:
        sheet_size_id: Sheet size identifier.
        quantity: Number of sheets.

    Returns:
        Unit price in USD, or None if pricing is not available.
    """
    band = get_effective_band(sheet_size_id, quantity)
    if band is None:
        return None
    return band["unit_price"]


def get_subtotal(sheet_size_id: str, quantity: int) -> float | None:
    """Get unit price times quantity, or None if pricing is not available."""
    unit_price = get_unit_price(sheet_size_id, quantity)
    if unit_price is None:
        return None
    return unit_price * quantity


def format_price(price: float | None) -> str:
    """Format a price as a dollar string (e.g. "$14.27"); None gives "$0.00"."""
    if price is None:
        return "$0.00"
    return f"${price:.2f}"


def describe_band(band: PriceBand) -> str:
    """Human-readable band summary, e.g. "Qty 1-9: $14.27 / sheet"."""
    if band["to_qty"] is None:
        qty = f"Qty {band['from_qty']}+"
    else:
        qty = f"Qty {band['from_qty']}-{band['to_qty']}"
    return f"{qty}: {format_price(band['unit_price'])} / sheet"
