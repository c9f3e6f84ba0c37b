"""State store for the gang sheet builder.

The store is the single owner of placement data. Each mutator either
commits a complete new snapshot that satisfies every layout invariant and
notifies subscribers, or changes nothing. Mutators never raise on bad
input: unknown ids, malformed payloads and invalid geometry are logged
and ignored.

Invariants held by every committed snapshot:
    1. Every padded box lies inside the sheet.
    2. No two padded boxes overlap (touching edges allowed).
    3. Every instance references an existing design.
    4. The selection only names existing instances, and the single
       selector is None or one of them.

Usage:
    store = GangBuilderStore()
    subscription = store.subscribe(render)
    design = store.add_design_file(upload)
    store.add_instances_for_design(design.id, 12, auto_pack=True)
    subscription.unsubscribe()
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from gangsheet.catalog import SheetSize, get_sheet_size
from gangsheet.config import Settings
from gangsheet.config import settings as default_settings
from gangsheet.geometry import Box, LayoutValidator, padded_box
from gangsheet.packing import PackResult, auto_pack, manual_pack
from gangsheet.store.models import (
    AddInstancesResult,
    DesignFile,
    DesignUpload,
    GangBuilderState,
    InstanceUpdate,
    PlacedInstance,
)
from gangsheet.utils.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[GangBuilderState], None]
IdFactory = Callable[[str], str]


def _random_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Subscription:
    """Handle returned by subscribe(); calling it also unsubscribes."""

    def __init__(self, store: GangBuilderStore, listener: Listener) -> None:
        self._store = store
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        """True until unsubscribe() has been called."""
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving snapshots. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._store._remove_listener(self._listener)

    def __call__(self) -> None:
        self.unsubscribe()


def state_violations(state: GangBuilderState, deadspace: float) -> list[str]:
    """List every invariant the snapshot breaks (empty when consistent).

    Args:
        state: Snapshot to check.
        deadspace: Margin used for padded boxes.

    Returns:
        Human-readable descriptions of each violation.
    """
    problems: list[str] = []
    sheet = state.sheet_size
    if sheet is None:
        return [f"unknown sheet size {state.selected_sheet_size_id!r}"]

    validator = LayoutValidator()
    boxes = [(inst.id, padded_box(inst, deadspace)) for inst in state.instances]
    for inst_id, box in boxes:
        if not validator.fits_sheet(box, sheet.width_in, sheet.height_in):
            problems.append(f"{inst_id} exceeds sheet bounds")
    for i, (first_id, first) in enumerate(boxes):
        for second_id, second in boxes[i + 1 :]:
            if first.intersects(second):
                problems.append(f"{first_id} overlaps {second_id}")

    design_ids = {d.id for d in state.design_files}
    for inst in state.instances:
        if inst.design_id not in design_ids:
            problems.append(f"{inst.id} references missing design {inst.design_id}")

    instance_ids = {i.id for i in state.instances}
    for selected in state.selected_instance_ids:
        if selected not in instance_ids:
            problems.append(f"selection names missing instance {selected}")
    legacy = state.selected_instance_id
    if legacy is not None and legacy not in state.selected_instance_ids:
        problems.append(f"single selector {legacy} is not in the selection set")
    return problems


def _prune_selection(
    selected: Sequence[str],
    legacy: str | None,
    instances: Iterable[PlacedInstance],
) -> tuple[tuple[str, ...], str | None]:
    live = {inst.id for inst in instances}
    kept = tuple(s for s in selected if s in live)
    if legacy not in kept:
        legacy = kept[-1] if kept else None
    return kept, legacy


class GangBuilderStore:
    """Owns the builder state and exposes validated, atomic mutators."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        id_factory: IdFactory | None = None,
    ) -> None:
        """Initialize the store with a fresh default state.

        Args:
            settings: Configuration (deadspace, padding, DPI, ...).
                Defaults to the module-level settings.
            id_factory: Callable producing ids from a prefix ("design",
                "instance"). Defaults to random short uuids.
        """
        self._settings = settings or default_settings
        self._new_id = id_factory or _random_id
        self._validator = LayoutValidator()
        self._listeners: list[Listener] = []
        self._state = self._initial_state()
        self.session_id = uuid.uuid4().hex

    # ------------------------------------------------------------------
    # Snapshot and subscription
    # ------------------------------------------------------------------

    @property
    def state(self) -> GangBuilderState:
        """Current immutable snapshot."""
        return self._state

    @property
    def settings(self) -> Settings:
        """Configuration this store validates with."""
        return self._settings

    @property
    def deadspace(self) -> float:
        """Margin around every instance, in inches."""
        return self._settings.DEADSPACE_IN

    def subscribe(self, listener: Listener) -> Subscription:
        """Register a listener and call it immediately with the snapshot.

        The listener is called again after every committed mutation. The
        snapshot it receives is frozen and must be treated as read-only.

        Args:
            listener: Callable receiving each new GangBuilderState.

        Returns:
            Subscription handle; call unsubscribe() to stop notifications.
        """
        self._listeners.append(listener)
        listener(self._state)
        return Subscription(self, listener)

    def _remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        snapshot = self._state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener failed", listener=repr(listener))

    def _commit(self, new_state: GangBuilderState, action: str, **fields: Any) -> bool:
        """Swap in a new snapshot and notify; no-op if nothing changed."""
        if new_state == self._state:
            return False
        self._state = new_state
        logger.debug("State committed", action=action, **fields)
        self._notify()
        return True

    def _reject(self, action: str, reason: str, **fields: Any) -> None:
        logger.debug("Mutation rejected", action=action, reason=reason, **fields)

    def _initial_state(self) -> GangBuilderState:
        return GangBuilderState(
            selected_sheet_size_id=self._settings.DEFAULT_SHEET_SIZE_ID,
            snap_increment=max(0.0, self._settings.DEFAULT_SNAP_INCREMENT_IN),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sheet(self) -> SheetSize | None:
        return self._state.sheet_size

    def _boxes(self, instances: Iterable[PlacedInstance]) -> list[Box]:
        return [padded_box(inst, self.deadspace) for inst in instances]

    def _with_instances(
        self,
        instances: Sequence[PlacedInstance],
        **updates: Any,
    ) -> GangBuilderState:
        """New snapshot with instances replaced and the selection pruned."""
        selected, legacy = _prune_selection(
            self._state.selected_instance_ids,
            self._state.selected_instance_id,
            instances,
        )
        return self._state.model_copy(
            update={
                "instances": tuple(instances),
                "selected_instance_ids": selected,
                "selected_instance_id": legacy,
                **updates,
            }
        )

    def _materialize(
        self,
        design: DesignFile,
        result: PackResult,
        occupied: Sequence[Box],
        sheet: SheetSize,
        width_in: float | None = None,
        height_in: float | None = None,
    ) -> list[PlacedInstance]:
        """Turn packed positions into instances, re-validating each one.

        A candidate that fails the bounds or overlap check is dropped
        silently; partial fulfillment is expected behaviour.
        """
        width = width_in if width_in is not None else design.width_in
        height = height_in if height_in is not None else design.height_in
        taken = list(occupied)
        accepted: list[PlacedInstance] = []
        for position in result.positions:
            candidate = PlacedInstance(
                id=self._new_id("instance"),
                design_id=design.id,
                x_in=position.x_in,
                y_in=position.y_in,
                width_in=width,
                height_in=height,
                rotation=position.rotation,
            )
            box = padded_box(candidate, self.deadspace)
            if not self._validator.is_valid([box], taken, sheet.width_in, sheet.height_in):
                logger.debug(
                    "Dropped packed position",
                    design_id=design.id,
                    x_in=position.x_in,
                    y_in=position.y_in,
                )
                continue
            accepted.append(candidate)
            taken.append(box)
        return accepted

    def _pack(
        self,
        sheet: SheetSize,
        width_in: float,
        height_in: float,
        quantity: int,
        occupied: Sequence[Box],
        allow_rotate: bool,
    ) -> PackResult:
        return auto_pack(
            sheet.width_in,
            sheet.height_in,
            width_in,
            height_in,
            quantity,
            padding=self._settings.PACK_PADDING_IN,
            deadspace=self.deadspace,
            allow_rotate=allow_rotate,
            occupied_boxes=occupied,
        )

    # ------------------------------------------------------------------
    # Sheet settings
    # ------------------------------------------------------------------

    def set_sheet_size(self, sheet_size_id: str) -> bool:
        """Select a sheet size from the catalog.

        Instances whose padded box no longer fits the new sheet are removed
        so the bounds invariant keeps holding.

        Returns:
            True if the state changed.
        """
        sheet = get_sheet_size(sheet_size_id)
        if sheet is None:
            self._reject("set_sheet_size", "unknown sheet size", sheet_size_id=sheet_size_id)
            return False

        kept = [
            inst
            for inst in self._state.instances
            if self._validator.fits_sheet(
                padded_box(inst, self.deadspace), sheet.width_in, sheet.height_in
            )
        ]
        dropped = len(self._state.instances) - len(kept)
        if dropped:
            logger.info(
                "Instances removed by sheet change",
                sheet_size_id=sheet.id,
                removed=dropped,
            )
        return self._commit(
            self._with_instances(kept, selected_sheet_size_id=sheet.id),
            "set_sheet_size",
            sheet_size_id=sheet.id,
        )

    def set_sheet_quantity(self, quantity: float) -> bool:
        """Set the number of sheets to order (floored, at least 1)."""
        try:
            value = max(1, math.floor(float(quantity)))
        except (TypeError, ValueError, OverflowError):
            self._reject("set_sheet_quantity", "not a number", quantity=repr(quantity))
            return False
        return self._commit(
            self._state.model_copy(update={"sheet_quantity": value}),
            "set_sheet_quantity",
            quantity=value,
        )

    def set_snap_increment(self, increment: float) -> bool:
        """Set the snap grid in inches; 0 (or negative) turns snapping off."""
        try:
            value = float(increment)
        except (TypeError, ValueError):
            self._reject("set_snap_increment", "not a number", increment=repr(increment))
            return False
        if not math.isfinite(value):
            self._reject("set_snap_increment", "not finite", increment=value)
            return False
        return self._commit(
            self._state.model_copy(update={"snap_increment": max(0.0, value)}),
            "set_snap_increment",
            increment=value,
        )

    # ------------------------------------------------------------------
    # Designs
    # ------------------------------------------------------------------

    def add_design_file(self, upload: DesignUpload | Mapping[str, Any]) -> DesignFile | None:
        """Register an uploaded artwork.

        Physical size defaults to the pixel size at the reference DPI. If
        only one dimension is given, the other follows the pixel aspect
        ratio.

        Args:
            upload: DesignUpload or an equivalent mapping.

        Returns:
            The stored DesignFile, or None if the upload was malformed.
        """
        try:
            data = (
                upload
                if isinstance(upload, DesignUpload)
                else DesignUpload.model_validate(upload)
            )
        except ValidationError as e:
            self._reject("add_design_file", "malformed upload", errors=e.error_count())
            return None

        aspect = data.natural_width_px / data.natural_height_px
        dpi = self._settings.REFERENCE_DPI
        if data.width_in is not None and data.height_in is not None:
            width_in, height_in = data.width_in, data.height_in
        elif data.width_in is not None:
            width_in, height_in = data.width_in, data.width_in / aspect
        elif data.height_in is not None:
            width_in, height_in = data.height_in * aspect, data.height_in
        else:
            width_in = data.natural_width_px / dpi
            height_in = data.natural_height_px / dpi

        design = DesignFile(
            id=self._new_id("design"),
            name=data.name,
            image_ref=data.image_data,
            natural_width_px=data.natural_width_px,
            natural_height_px=data.natural_height_px,
            width_in=width_in,
            height_in=height_in,
        )
        self._commit(
            self._state.model_copy(
                update={"design_files": (*self._state.design_files, design)}
            ),
            "add_design_file",
            design_id=design.id,
            name=design.name,
        )
        return design

    def update_design_size(
        self,
        design_id: str,
        width_in: float,
        height_in: float,
        reorganize: bool = False,
    ) -> bool:
        """Change a design's print size.

        Without ``reorganize`` only the design record changes; placed
        instances keep the size they were placed with. With ``reorganize``
        every instance of the design is scaled by the same factor. A single
        instance is resized in place when it still fits (and repacked
        otherwise); several instances are deleted and re-created by the
        packer, so their positions reset.

        Returns:
            True if the state changed.
        """
        design = self._state.design(design_id)
        if design is None:
            self._reject("update_design_size", "unknown design", design_id=design_id)
            return False
        try:
            width, height = float(width_in), float(height_in)
        except (TypeError, ValueError):
            self._reject("update_design_size", "not a number", design_id=design_id)
            return False
        if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
            self._reject("update_design_size", "non-positive size", design_id=design_id)
            return False

        resized = design.model_copy(update={"width_in": width, "height_in": height})
        designs = tuple(resized if d.id == design_id else d for d in self._state.design_files)
        instances = list(self._state.instances)

        if reorganize:
            instances = self._reorganize(design, resized, instances)

        return self._commit(
            self._with_instances(instances, design_files=designs),
            "update_design_size",
            design_id=design_id,
            width_in=width,
            height_in=height,
            reorganize=reorganize,
        )

    def _reorganize(
        self,
        before: DesignFile,
        after: DesignFile,
        instances: list[PlacedInstance],
    ) -> list[PlacedInstance]:
        sheet = self._sheet()
        own = [inst for inst in instances if inst.design_id == before.id]
        others = [inst for inst in instances if inst.design_id != before.id]
        if sheet is None or not own:
            return instances

        scale_x = after.width_in / before.width_in
        scale_y = after.height_in / before.height_in
        occupied = self._boxes(others)

        if len(own) == 1:
            scaled = own[0].model_copy(
                update={
                    "width_in": own[0].width_in * scale_x,
                    "height_in": own[0].height_in * scale_y,
                }
            )
            box = padded_box(scaled, self.deadspace)
            if self._validator.is_valid([box], occupied, sheet.width_in, sheet.height_in):
                return [scaled if inst.id == scaled.id else inst for inst in instances]

        result = self._pack(
            sheet,
            after.width_in,
            after.height_in,
            len(own),
            occupied,
            self._settings.ALLOW_ROTATE_PACKING,
        )
        repacked = self._materialize(after, result, occupied, sheet)
        if len(repacked) < len(own):
            logger.info(
                "Reorganize placed fewer instances",
                design_id=after.id,
                requested=len(own),
                placed=len(repacked),
            )
        return [*others, *repacked]

    def remove_design_file(self, design_id: str) -> bool:
        """Delete a design and every instance that uses it."""
        if self._state.design(design_id) is None:
            self._reject("remove_design_file", "unknown design", design_id=design_id)
            return False
        designs = tuple(d for d in self._state.design_files if d.id != design_id)
        instances = [i for i in self._state.instances if i.design_id != design_id]
        return self._commit(
            self._with_instances(instances, design_files=designs),
            "remove_design_file",
            design_id=design_id,
        )

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def add_instances_for_design(
        self,
        design_id: str,
        quantity: int,
        auto_pack: bool = False,
        allow_rotate: bool | None = None,
    ) -> AddInstancesResult:
        """Place copies of a design on the sheet.

        With ``auto_pack`` the design's existing instances are removed
        first (so repeated packing never stacks copies), the packer works
        around every other design's instances, and the grid capacity is
        returned so callers can clamp later requests. Without it, copies
        are added next to what is already there using the loose manual
        heuristic.

        Args:
            design_id: Design to place.
            quantity: Number of copies requested.
            auto_pack: Use the grid packer instead of manual placement.
            allow_rotate: Let the packer use rotated cells. Defaults to
                settings.ALLOW_ROTATE_PACKING.

        Returns:
            AddInstancesResult; ``max_instances == 0`` means the request
            was invalid (unknown design or sheet, non-positive quantity).
        """
        design = self._state.design(design_id)
        sheet = self._sheet()
        if design is None or sheet is None:
            self._reject("add_instances_for_design", "unknown design or sheet", design_id=design_id)
            return AddInstancesResult(max_instances=0)
        try:
            count = int(quantity)
        except (TypeError, ValueError, OverflowError):
            self._reject("add_instances_for_design", "not a number", design_id=design_id)
            return AddInstancesResult(max_instances=0)
        if count <= 0:
            self._reject("add_instances_for_design", "non-positive quantity", design_id=design_id)
            return AddInstancesResult(max_instances=0)

        rotate = self._settings.ALLOW_ROTATE_PACKING if allow_rotate is None else allow_rotate
        if auto_pack:
            base = [i for i in self._state.instances if i.design_id != design_id]
            occupied = self._boxes(base)
            result = self._pack(sheet, design.width_in, design.height_in, count, occupied, rotate)
        else:
            base = list(self._state.instances)
            occupied = self._boxes(base)
            result = manual_pack(
                sheet.width_in,
                sheet.height_in,
                design.width_in,
                design.height_in,
                count,
                deadspace=self.deadspace,
                occupied_boxes=occupied,
                spacing=self._settings.MANUAL_SPACING_IN,
                max_attempts=self._settings.MANUAL_MAX_ATTEMPTS,
                padding=self._settings.PACK_PADDING_IN,
            )

        accepted = self._materialize(design, result, occupied, sheet)
        if len(accepted) < count:
            logger.info(
                "Partial placement",
                design_id=design_id,
                requested=count,
                placed=len(accepted),
                capacity=result.capacity,
            )
        self._commit(
            self._with_instances([*base, *accepted]),
            "add_instances_for_design",
            design_id=design_id,
            placed=len(accepted),
            auto_pack=auto_pack,
        )
        return AddInstancesResult(max_instances=result.capacity, placed=len(accepted))

    def update_instances(
        self,
        updates: Iterable[InstanceUpdate | Mapping[str, Any]],
    ) -> bool:
        """Apply a batch of position/rotation changes atomically.

        The batch commits only if every updated instance stays inside the
        sheet, clear of every other updated instance and of every instance
        not in the batch. Otherwise nothing changes.

        Args:
            updates: InstanceUpdate records (or equivalent mappings).

        Returns:
            True if the batch was accepted (including a batch that changes
            nothing), False if it was rejected.
        """
        try:
            batch = [
                u if isinstance(u, InstanceUpdate) else InstanceUpdate.model_validate(u)
                for u in updates
            ]
        except ValidationError as e:
            self._reject("update_instances", "malformed update", errors=e.error_count())
            return False
        if not batch:
            return True

        ids = [u.id for u in batch]
        if len(set(ids)) != len(ids):
            self._reject("update_instances", "duplicate ids in batch")
            return False

        current = {inst.id: inst for inst in self._state.instances}
        missing = [i for i in ids if i not in current]
        if missing:
            self._reject("update_instances", "unknown instance", ids=missing)
            return False

        sheet = self._sheet()
        if sheet is None:
            self._reject("update_instances", "unknown sheet")
            return False

        proposed = {u.id: current[u.id].model_copy(update=u.patch()) for u in batch}
        moving = self._boxes(proposed.values())
        stationary = self._boxes(i for i in self._state.instances if i.id not in proposed)
        violation = self._validator.first_violation(
            moving, stationary, sheet.width_in, sheet.height_in
        )
        if violation is not None:
            self._reject("update_instances", str(violation), count=len(batch))
            return False

        instances = [proposed.get(inst.id, inst) for inst in self._state.instances]
        self._commit(
            self._state.model_copy(update={"instances": tuple(instances)}),
            "update_instances",
            count=len(batch),
        )
        return True

    def delete_instances(self, instance_ids: Iterable[str]) -> bool:
        """Remove instances by id; unknown ids are ignored."""
        doomed = set(instance_ids)
        instances = [i for i in self._state.instances if i.id not in doomed]
        if len(instances) == len(self._state.instances):
            return False
        return self._commit(
            self._with_instances(instances),
            "delete_instances",
            count=len(self._state.instances) - len(instances),
        )

    def clear_instances(self) -> bool:
        """Remove every instance from the sheet."""
        return self._commit(self._with_instances([]), "clear_instances")

    def reset(self) -> bool:
        """Return to the initial state (designs included). Listeners stay."""
        return self._commit(self._initial_state(), "reset")

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_selected_instance(self, instance_id: str | None) -> bool:
        """Select exactly one instance, or clear the selection with None."""
        if instance_id is None:
            ids: tuple[str, ...] = ()
        elif self._state.instance(instance_id) is None:
            self._reject("set_selected_instance", "unknown instance", instance_id=instance_id)
            return False
        else:
            ids = (instance_id,)
        return self._commit(
            self._state.model_copy(
                update={"selected_instance_ids": ids, "selected_instance_id": instance_id}
            ),
            "set_selected_instance",
            instance_id=instance_id,
        )

    def toggle_instance_selection(self, instance_id: str) -> bool:
        """Add an instance to the selection, or remove it if already there."""
        if self._state.instance(instance_id) is None:
            self._reject("toggle_instance_selection", "unknown instance", instance_id=instance_id)
            return False
        selected = self._state.selected_instance_ids
        if instance_id in selected:
            ids = tuple(s for s in selected if s != instance_id)
            legacy = self._state.selected_instance_id
            if legacy not in ids:
                legacy = ids[-1] if ids else None
        else:
            ids = (*selected, instance_id)
            legacy = instance_id
        return self._commit(
            self._state.model_copy(
                update={"selected_instance_ids": ids, "selected_instance_id": legacy}
            ),
            "toggle_instance_selection",
            instance_id=instance_id,
        )

    def set_instance_selection(self, instance_ids: Iterable[str]) -> bool:
        """Replace the selection; unknown ids are dropped, order is kept."""
        live = {inst.id for inst in self._state.instances}
        ids = tuple(dict.fromkeys(i for i in instance_ids if i in live))
        return self._commit(
            self._state.model_copy(
                update={
                    "selected_instance_ids": ids,
                    "selected_instance_id": ids[-1] if ids else None,
                }
            ),
            "set_instance_selection",
            count=len(ids),
        )
