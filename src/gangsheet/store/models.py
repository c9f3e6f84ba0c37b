"""Data models for the gang sheet builder state.

Every record is an immutable Pydantic model. The store never edits a
record in place: mutators build replacements with ``model_copy`` and swap
in a new ``GangBuilderState`` snapshot, so a snapshot handed to a listener
can never change underneath it.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field

from gangsheet.catalog import SheetSize, get_sheet_size
from gangsheet.geometry import Rotation

# Far beyond any printable sheet at the reference DPI
MAX_NATURAL_PX = 1_000_000


class DesignUpload(BaseModel):
    """Inbound upload event.

    Attributes:
        name: Original file name.
        image_data: A ``data:`` URL or a filesystem path to the artwork.
        natural_width_px: Decoded pixel width.
        natural_height_px: Decoded pixel height.
        width_in: Optional physical width; derived at the reference DPI
            when omitted.
        height_in: Optional physical height; derived at the reference DPI
            when omitted.
    """

    name: str = Field(..., min_length=1)
    image_data: str = Field(..., min_length=1)
    natural_width_px: int = Field(..., gt=0, le=MAX_NATURAL_PX)
    natural_height_px: int = Field(..., gt=0, le=MAX_NATURAL_PX)
    width_in: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    height_in: float | None = Field(default=None, gt=0, allow_inf_nan=False)


class DesignFile(BaseModel, frozen=True):
    """An uploaded artwork asset.

    ``width_in``/``height_in`` are the user-adjustable print dimensions.
    """

    id: str
    name: str
    image_ref: str = Field(..., repr=False)
    natural_width_px: int = Field(..., gt=0)
    natural_height_px: int = Field(..., gt=0)
    width_in: float = Field(..., gt=0)
    height_in: float = Field(..., gt=0)

    @property
    def aspect_ratio(self) -> float:
        """Natural width / height."""
        return self.natural_width_px / self.natural_height_px


class PlacedInstance(BaseModel, frozen=True):
    """One physical copy of a design on the sheet.

    ``(x_in, y_in)`` is the top-left of the *unrotated* artwork. Width and
    height are copied from the design when the instance is placed.
    """

    id: str
    design_id: str
    x_in: float
    y_in: float
    width_in: float = Field(..., gt=0)
    height_in: float = Field(..., gt=0)
    rotation: Rotation = Rotation.DEG_0


class InstanceUpdate(BaseModel, frozen=True):
    """A partial change to one instance inside an atomic batch."""

    id: str
    x_in: float | None = Field(default=None, allow_inf_nan=False)
    y_in: float | None = Field(default=None, allow_inf_nan=False)
    rotation: Rotation | None = None

    def patch(self) -> dict[str, float | Rotation]:
        """Fields to apply, skipping those left unset."""
        fields: dict[str, float | Rotation] = {}
        if self.x_in is not None:
            fields["x_in"] = self.x_in
        if self.y_in is not None:
            fields["y_in"] = self.y_in
        if self.rotation is not None:
            fields["rotation"] = self.rotation
        return fields


class GangBuilderState(BaseModel, frozen=True):
    """Root snapshot of the builder.

    ``selected_instance_id`` is the single-instance selector kept for
    consumers that only show one selection; it is always None or a member
    of ``selected_instance_ids``.
    """

    selected_sheet_size_id: str
    sheet_quantity: int = Field(default=1, ge=1)
    design_files: tuple[DesignFile, ...] = ()
    instances: tuple[PlacedInstance, ...] = ()
    selected_instance_ids: tuple[str, ...] = ()
    selected_instance_id: str | None = None
    snap_increment: float = Field(default=0.125, ge=0)

    @property
    def sheet_size(self) -> SheetSize | None:
        """Catalog entry for the selected sheet."""
        return get_sheet_size(self.selected_sheet_size_id)

    def design(self, design_id: str) -> DesignFile | None:
        """Find a design by id."""
        return next((d for d in self.design_files if d.id == design_id), None)

    def instance(self, instance_id: str) -> PlacedInstance | None:
        """Find an instance by id."""
        return next((i for i in self.instances if i.id == instance_id), None)

    def instances_of(self, design_id: str) -> tuple[PlacedInstance, ...]:
        """All instances of one design, in sheet order."""
        return tuple(i for i in self.instances if i.design_id == design_id)

    def selected_instances(self) -> tuple[PlacedInstance, ...]:
        """Selected instances, in sheet order."""
        selected = set(self.selected_instance_ids)
        return tuple(i for i in self.instances if i.id in selected)


@dataclass(frozen=True)
class AddInstancesResult:
    """Outcome of add_instances_for_design.

    Attributes:
        max_instances: Capacity bound for the design on the current sheet,
            used to clamp future requests. 0 signals an invalid request.
        placed: Number of instances actually committed.
    """

    max_instances: int
    placed: int = 0
