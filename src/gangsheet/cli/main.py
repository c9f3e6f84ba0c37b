"""gangsheet CLI - gang sheet layout from the command line.

Lists sheet sizes, quotes prices and auto-packs one design onto a sheet.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from PIL import Image, UnidentifiedImageError

from gangsheet import __version__
from gangsheet.catalog import SHEET_SIZES, get_price_bands, get_sheet_size
from gangsheet.checkout import serialize_layout
from gangsheet.metrics import get_sheet_usage, quality_message
from gangsheet.pricing import describe_band, format_price, get_subtotal, get_unit_price
from gangsheet.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="gangsheet",
    help="gangsheet: print-sheet layout engine for DTF gang sheets",
    add_completion=False,
)


def _check_sheet(sheet_id: str) -> str:
    if get_sheet_size(sheet_id) is None:
        known = ", ".join(size.id for size in SHEET_SIZES)
        raise typer.BadParameter(f"Unknown sheet size {sheet_id!r} (choose from {known})")
    return sheet_id


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"gangsheet {__version__}")


@app.command()
def sizes(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List the available sheet sizes and their price bands."""
    if json_output:
        data = [
            {
                **size.model_dump(),
                "price_bands": list(get_price_bands(size.id)),
            }
            for size in SHEET_SIZES
        ]
        typer.echo(json.dumps(data, indent=2))
        return

    for size in SHEET_SIZES:
        typer.echo(f"{size.id:<8} {size.label}")
        for band in get_price_bands(size.id):
            typer.echo(f"    {describe_band(band)}")


@app.command()
def quote(
    sheet_id: Annotated[
        str, typer.Argument(help="Sheet size id (e.g. 22x12)", callback=_check_sheet)
    ],
    quantity: Annotated[
        int, typer.Option("--quantity", "-n", min=1, help="Number of sheets")
    ] = 1,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show the unit price and subtotal for an order."""
    unit_price = get_unit_price(sheet_id, quantity)
    subtotal = get_subtotal(sheet_id, quantity)
    if json_output:
        typer.echo(
            json.dumps(
                {
                    "sheet_size_id": sheet_id,
                    "quantity": quantity,
                    "unit_price": unit_price,
                    "subtotal": subtotal,
                }
            )
        )
        return
    typer.echo(f"Unit price: {format_price(unit_price)}")
    typer.echo(f"Subtotal:   {format_price(subtotal)}")


@app.command()
def pack(  # noqa: PLR0913
    image: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Artwork image file",
        ),
    ],
    sheet_id: Annotated[
        str, typer.Option("--sheet", "-s", help="Sheet size id", callback=_check_sheet)
    ] = "22x12",
    quantity: Annotated[
        int, typer.Option("--quantity", "-n", min=1, help="Copies to place")
    ] = 1,
    width: Annotated[
        float | None, typer.Option("--width", help="Print width in inches")
    ] = None,
    height: Annotated[
        float | None, typer.Option("--height", help="Print height in inches")
    ] = None,
    rotate: Annotated[
        bool, typer.Option("--rotate/--no-rotate", help="Allow rotated cells")
    ] = True,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Save layout JSON")
    ] = None,
    render: Annotated[
        Path | None, typer.Option("--render", help="Save a PNG preview")
    ] = None,
    verbose: Annotated[
        int, typer.Option("--verbose", "-v", count=True, help="Increase verbosity")
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Auto-pack copies of one design onto a sheet."""
    from gangsheet.canvas import SheetRenderer, Viewport  # noqa: PLC0415
    from gangsheet.store import GangBuilderStore  # noqa: PLC0415

    _configure_logging(verbose)
    logger = get_logger(__name__)

    try:
        with Image.open(image) as img:
            natural_w, natural_h = img.size
    except (OSError, UnidentifiedImageError) as e:
        typer.echo(f"Error: cannot read image {image}: {e}", err=True)
        raise typer.Exit(1) from None

    store = GangBuilderStore()
    store.set_sheet_size(sheet_id)
    design = store.add_design_file(
        {
            "name": image.name,
            "image_data": str(image),
            "natural_width_px": natural_w,
            "natural_height_px": natural_h,
            "width_in": width,
            "height_in": height,
        }
    )
    if design is None:
        typer.echo("Error: invalid design dimensions", err=True)
        raise typer.Exit(1)

    result = store.add_instances_for_design(
        design.id, quantity, auto_pack=True, allow_rotate=rotate
    )
    state = store.state
    usage = get_sheet_usage(state)
    logger.info(
        "Packed design",
        design=design.name,
        requested=quantity,
        placed=result.placed,
        capacity=result.max_instances,
    )

    if output is not None:
        payload = serialize_layout(state).model_dump(by_alias=True)
        output.write_text(json.dumps(payload, indent=2))
        logger.info("Layout saved", path=str(output))

    if render is not None:
        sheet = state.sheet_size
        assert sheet is not None
        viewport = Viewport(sheet, zoom=1.0)
        frame = SheetRenderer(deadspace=store.deadspace).render(state, viewport)
        frame.save(render)
        logger.info("Preview saved", path=str(render))

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "sheet_size_id": state.selected_sheet_size_id,
                    "design_width_in": design.width_in,
                    "design_height_in": design.height_in,
                    "requested": quantity,
                    "placed": result.placed,
                    "capacity": result.max_instances,
                    "usage_pct": usage.usage_pct,
                },
                indent=2,
            )
        )
    else:
        typer.echo(
            f"Placed {result.placed} of {quantity} "
            f"({design.width_in:.2f} x {design.height_in:.2f} in, capacity {result.max_instances})"
        )
        typer.echo(f"Usage: {usage.usage_pct:.1f}% - {quality_message(usage)}")

    raise typer.Exit(0 if result.placed > 0 else 1)


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)
