"""Tests for gangsheet.store.store module."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gangsheet.config import Settings
from gangsheet.geometry import Rotation, padded_box
from gangsheet.store import (
    DesignFile,
    DesignUpload,
    GangBuilderState,
    GangBuilderStore,
    InstanceUpdate,
    PlacedInstance,
    state_violations,
)

DEADSPACE = 0.157
# Top-left of the artwork in the first auto-packed cell: padding/2 + deadspace
FIRST_CELL = 0.0625 + DEADSPACE

AddDesign = Callable[..., DesignFile]


def _assert_consistent(store: GangBuilderStore) -> None:
    assert state_violations(store.state, store.deadspace) == []


class TestInitialState:
    """Tests for a freshly created store."""

    def test_defaults(self, store: GangBuilderStore) -> None:
        """Test the default sheet, quantity and snap increment."""
        state = store.state
        assert state.selected_sheet_size_id == "22x12"
        assert state.sheet_quantity == 1
        assert state.snap_increment == 0.125
        assert state.design_files == ()
        assert state.instances == ()
        assert state.selected_instance_id is None

    def test_snapshot_is_frozen(self, store: GangBuilderStore) -> None:
        """Test listeners cannot mutate the snapshot."""
        with pytest.raises(Exception):  # noqa: B017
            store.state.sheet_quantity = 5  # type: ignore[misc]


class TestSubscribe:
    """Tests for subscribe/unsubscribe."""

    def test_immediate_call_with_snapshot(self, store: GangBuilderStore) -> None:
        """Test the listener is called at once with the current state."""
        seen: list[GangBuilderState] = []
        store.subscribe(seen.append)
        assert seen == [store.state]

    def test_called_after_commit(self, store: GangBuilderStore) -> None:
        """Test each committed mutation notifies once."""
        seen: list[GangBuilderState] = []
        store.subscribe(seen.append)
        store.set_sheet_quantity(3)
        assert len(seen) == 2
        assert seen[-1].sheet_quantity == 3

    def test_no_call_when_nothing_changes(self, store: GangBuilderStore) -> None:
        """Test no-op and rejected mutations do not notify."""
        seen: list[GangBuilderState] = []
        store.subscribe(seen.append)
        store.set_sheet_quantity(1)
        store.set_sheet_size("nope")
        assert len(seen) == 1

    def test_unsubscribe_is_idempotent(self, store: GangBuilderStore) -> None:
        """Test unsubscribing twice is safe and stops notifications."""
        seen: list[GangBuilderState] = []
        subscription = store.subscribe(seen.append)
        subscription.unsubscribe()
        subscription()
        assert not subscription.active
        store.set_sheet_quantity(4)
        assert len(seen) == 1

    def test_failing_listener_does_not_block_others(self, store: GangBuilderStore) -> None:
        """Test an exception in one listener is contained."""
        calls: list[int] = []

        def broken(state: GangBuilderState) -> None:
            if calls:
                raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda state: calls.append(state.sheet_quantity))
        store.set_sheet_quantity(2)
        assert calls == [1, 2]


class TestSheetSettings:
    """Tests for sheet size, quantity and snap mutators."""

    def test_set_sheet_size(self, store: GangBuilderStore) -> None:
        """Test selecting a known sheet size."""
        assert store.set_sheet_size("22x60") is True
        assert store.state.sheet_size is not None
        assert store.state.sheet_size.height_in == 60

    def test_unknown_sheet_size_is_noop(self, store: GangBuilderStore) -> None:
        """Test an unknown id leaves the state unchanged."""
        before = store.state
        assert store.set_sheet_size("22x999") is False
        assert store.state is before

    def test_smaller_sheet_drops_instances_outside(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test switching to a shorter sheet removes rows that no longer fit."""
        store.set_sheet_size("22x24")
        design = add_design(4, 4)
        store.add_instances_for_design(design.id, 20, auto_pack=True, allow_rotate=False)
        assert len(store.state.instances) == 20
        store.set_instance_selection(i.id for i in store.state.instances)

        store.set_sheet_size("22x12")

        assert len(store.state.instances) == 8
        assert len(store.state.selected_instance_ids) == 8
        _assert_consistent(store)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2.7, 2), (0, 1), (-5, 1), (12, 12)],
    )
    def test_set_sheet_quantity(
        self, store: GangBuilderStore, value: float, expected: int
    ) -> None:
        """Test quantities are floored and clamped to at least one."""
        store.set_sheet_quantity(value)
        assert store.state.sheet_quantity == expected

    def test_set_sheet_quantity_rejects_garbage(self, store: GangBuilderStore) -> None:
        """Test a non-numeric quantity is ignored."""
        assert store.set_sheet_quantity("many") is False  # type: ignore[arg-type]
        assert store.state.sheet_quantity == 1

    def test_set_snap_increment(self, store: GangBuilderStore) -> None:
        """Test snap increment updates and clamps negatives to zero."""
        store.set_snap_increment(0.25)
        assert store.state.snap_increment == 0.25
        store.set_snap_increment(-1)
        assert store.state.snap_increment == 0.0

    def test_set_snap_increment_rejects_nan(self, store: GangBuilderStore) -> None:
        """Test a non-finite increment is ignored."""
        assert store.set_snap_increment(float("nan")) is False
        assert store.state.snap_increment == 0.125


class TestDesignFiles:
    """Tests for design file mutators."""

    def test_default_size_at_300_dpi(self, store: GangBuilderStore) -> None:
        """Test physical size defaults to pixels / 300."""
        design = store.add_design_file(
            DesignUpload(
                name="logo.png",
                image_data="data:image/png;base64,AAAA",
                natural_width_px=600,
                natural_height_px=300,
            )
        )
        assert design is not None
        assert design.width_in == pytest.approx(2.0)
        assert design.height_in == pytest.approx(1.0)
        assert store.state.design_files == (design,)

    def test_missing_dimension_follows_aspect_ratio(self, store: GangBuilderStore) -> None:
        """Test giving only a width derives the height."""
        design = store.add_design_file(
            {
                "name": "wide.png",
                "image_data": "/tmp/wide.png",
                "natural_width_px": 600,
                "natural_height_px": 300,
                "width_in": 4.0,
            }
        )
        assert design is not None
        assert design.height_in == pytest.approx(2.0)

    @pytest.mark.parametrize(
        "upload",
        [
            {"name": "a.png", "image_data": "x", "natural_width_px": 0, "natural_height_px": 10},
            {"name": "a.png", "image_data": "x", "natural_width_px": 10, "natural_height_px": -1},
            {"name": "a.png", "natural_width_px": 10, "natural_height_px": 10},
            {
                "name": "a.png",
                "image_data": "x",
                "natural_width_px": 10,
                "natural_height_px": 10,
                "width_in": float("inf"),
            },
            {
                "name": "huge.png",
                "image_data": "x",
                "natural_width_px": 10**400,
                "natural_height_px": 1,
            },
        ],
    )
    def test_malformed_upload_returns_none(
        self, store: GangBuilderStore, upload: dict[str, object]
    ) -> None:
        """Test invalid uploads are rejected without changing state."""
        before = store.state
        assert store.add_design_file(upload) is None
        assert store.state is before

    def test_update_design_size_without_reorganize(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test resizing a design leaves placed instances alone."""
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 1)
        assert store.update_design_size(design.id, 3, 3) is True
        updated = store.state.design(design.id)
        assert updated is not None
        assert updated.width_in == 3
        assert store.state.instances[0].width_in == 2

    def test_reorganize_single_instance_resizes_in_place(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test one instance keeps its position when the new size fits."""
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 1)
        before = store.state.instances[0]

        store.update_design_size(design.id, 3, 3, reorganize=True)

        after = store.state.instances[0]
        assert after.id == before.id
        assert (after.x_in, after.y_in) == (before.x_in, before.y_in)
        assert after.width_in == pytest.approx(3)
        _assert_consistent(store)

    def test_reorganize_many_instances_repacks(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test several instances are re-created at the new size."""
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 4, auto_pack=True)
        old_ids = {i.id for i in store.state.instances}

        store.update_design_size(design.id, 3, 3, reorganize=True)

        instances = store.state.instances_of(design.id)
        assert len(instances) == 4
        assert all(i.width_in == pytest.approx(3) for i in instances)
        assert old_ids.isdisjoint(i.id for i in instances)
        _assert_consistent(store)

    def test_reorganize_keeps_other_designs(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test repacking one design does not move another."""
        other = add_design(2, 2, name="other.png")
        store.add_instances_for_design(other.id, 2)
        other_before = store.state.instances_of(other.id)
        design = add_design(1, 1)
        store.add_instances_for_design(design.id, 3, auto_pack=True)

        store.update_design_size(design.id, 2, 2, reorganize=True)

        assert store.state.instances_of(other.id) == other_before
        _assert_consistent(store)

    @pytest.mark.parametrize(("width", "height"), [(0, 2), (2, -1), (float("nan"), 1)])
    def test_update_design_size_rejects_bad_size(
        self, store: GangBuilderStore, add_design: AddDesign, width: float, height: float
    ) -> None:
        """Test non-positive or non-finite sizes are ignored."""
        design = add_design(2, 2)
        before = store.state
        assert store.update_design_size(design.id, width, height) is False
        assert store.state is before

    def test_update_unknown_design(self, store: GangBuilderStore) -> None:
        """Test resizing an unknown design is a no-op."""
        assert store.update_design_size("design_404", 2, 2) is False

    def test_remove_design_cascades(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test removing a design deletes its instances and their selection."""
        keep = add_design(2, 2, name="keep.png")
        store.add_instances_for_design(keep.id, 1)
        doomed = add_design(2, 2, name="doomed.png")
        store.add_instances_for_design(doomed.id, 3)
        doomed_ids = [i.id for i in store.state.instances_of(doomed.id)]
        assert len(doomed_ids) == 3
        store.set_instance_selection(doomed_ids)

        assert store.remove_design_file(doomed.id) is True

        remaining = {i.id for i in store.state.instances}
        assert remaining.isdisjoint(doomed_ids)
        assert len(remaining) == 1
        assert store.state.selected_instance_ids == ()
        assert store.state.selected_instance_id is None
        assert store.state.design(doomed.id) is None
        _assert_consistent(store)

    def test_remove_unknown_design(self, store: GangBuilderStore) -> None:
        """Test removing an unknown design is a no-op."""
        assert store.remove_design_file("design_404") is False


class TestAddInstances:
    """Tests for add_instances_for_design."""

    def test_22x12_scenario(self, store: GangBuilderStore, add_design: AddDesign) -> None:
        """Test 20 copies of a 4x4 design auto-pack to exactly 8."""
        design = add_design(4, 4)
        result = store.add_instances_for_design(
            design.id, 20, auto_pack=True, allow_rotate=False
        )
        assert result.max_instances == 8
        assert result.placed == 8
        assert len(store.state.instances) == 8
        first = store.state.instances[0]
        assert first.x_in == pytest.approx(FIRST_CELL)
        assert first.y_in == pytest.approx(FIRST_CELL)
        _assert_consistent(store)

    def test_repeated_auto_pack_does_not_accumulate(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test auto-pack replaces the design's previous instances."""
        design = add_design(4, 4)
        store.add_instances_for_design(design.id, 5, auto_pack=True)
        store.add_instances_for_design(design.id, 5, auto_pack=True)
        assert len(store.state.instances) == 5
        _assert_consistent(store)

    def test_auto_pack_avoids_other_designs(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test packing works around instances of other designs."""
        small = add_design(2, 2, name="small.png")
        store.add_instances_for_design(small.id, 1)
        big = add_design(4, 4, name="big.png")
        result = store.add_instances_for_design(
            big.id, 20, auto_pack=True, allow_rotate=False
        )
        assert result.placed == 7
        assert len(store.state.instances_of(small.id)) == 1
        _assert_consistent(store)

    def test_manual_placement(self, store: GangBuilderStore, add_design: AddDesign) -> None:
        """Test adding without auto-pack places copies next to existing ones."""
        design = add_design(2, 2)
        first = store.add_instances_for_design(design.id, 2)
        second = store.add_instances_for_design(design.id, 2)
        assert first.placed == 2
        assert second.placed == 2
        assert len(store.state.instances) == 4
        _assert_consistent(store)

    def test_instances_copy_design_size(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test new instances take the design's current size."""
        design = add_design(3, 1.5)
        store.add_instances_for_design(design.id, 1)
        instance = store.state.instances[0]
        assert instance.design_id == design.id
        assert (instance.width_in, instance.height_in) == (3, 1.5)
        assert instance.rotation is Rotation.DEG_0

    def test_unknown_design_returns_zero(self, store: GangBuilderStore) -> None:
        """Test an unknown design returns the invalid-request sentinel."""
        result = store.add_instances_for_design("design_404", 3, auto_pack=True)
        assert result.max_instances == 0
        assert result.placed == 0

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(
        self, store: GangBuilderStore, add_design: AddDesign, quantity: int
    ) -> None:
        """Test a non-positive quantity changes nothing."""
        design = add_design(2, 2)
        result = store.add_instances_for_design(design.id, quantity, auto_pack=True)
        assert result.max_instances == 0
        assert store.state.instances == ()

    @pytest.mark.parametrize("auto_pack", [False, True])
    def test_absurd_quantity_places_what_fits(
        self, store: GangBuilderStore, add_design: AddDesign, auto_pack: bool
    ) -> None:
        """Test an enormous request fills the sheet instead of failing."""
        design = add_design(4, 4)
        result = store.add_instances_for_design(design.id, 10**400, auto_pack=auto_pack)
        assert result.placed > 0
        assert len(store.state.instances) == result.placed
        _assert_consistent(store)

    def test_oversized_design_places_nothing(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test a design larger than the sheet is reported, not placed."""
        design = add_design(30, 2)
        result = store.add_instances_for_design(design.id, 1, auto_pack=True)
        assert result.placed == 0
        assert store.state.instances == ()


class TestUpdateInstances:
    """Tests for atomic batch updates."""

    @pytest.fixture
    def packed(self, store: GangBuilderStore, add_design: AddDesign) -> GangBuilderStore:
        """Store with two 4x4 instances in the first row."""
        design = add_design(4, 4)
        store.add_instances_for_design(design.id, 2, auto_pack=True, allow_rotate=False)
        return store

    def test_valid_move(self, packed: GangBuilderStore) -> None:
        """Test a legal move is committed."""
        inst = packed.state.instances[0]
        assert packed.update_instances([InstanceUpdate(id=inst.id, y_in=5.0)]) is True
        assert packed.state.instance(inst.id).y_in == 5.0  # type: ignore[union-attr]

    def test_move_out_of_bounds_rejected(self, packed: GangBuilderStore) -> None:
        """Test a move past the right edge leaves the instance in place."""
        inst = packed.state.instances[1]
        before = packed.state
        assert packed.update_instances([{"id": inst.id, "x_in": 20.0}]) is False
        assert packed.state is before

    def test_overlap_rejected(self, packed: GangBuilderStore) -> None:
        """Test moving onto another instance is rejected."""
        a, b = packed.state.instances
        assert packed.update_instances([InstanceUpdate(id=a.id, x_in=b.x_in - 1)]) is False
        assert packed.state.instance(a.id) == a

    def test_group_move_is_atomic(self, packed: GangBuilderStore) -> None:
        """Test one bad member rejects the whole batch."""
        a, b = packed.state.instances
        updates = [
            InstanceUpdate(id=a.id, x_in=a.x_in + 14),
            InstanceUpdate(id=b.id, x_in=b.x_in + 14),
        ]
        assert packed.update_instances(updates) is False
        assert packed.state.instances == (a, b)

    def test_group_members_checked_against_each_other(self, packed: GangBuilderStore) -> None:
        """Test members of a batch cannot land on each other."""
        a, b = packed.state.instances
        updates = [
            InstanceUpdate(id=a.id, x_in=10.0, y_in=6.0),
            InstanceUpdate(id=b.id, x_in=11.0, y_in=6.0),
        ]
        assert packed.update_instances(updates) is False

    def test_swap_positions_in_one_batch(self, packed: GangBuilderStore) -> None:
        """Test validation uses the proposed state, not the current one."""
        a, b = packed.state.instances
        updates = [
            InstanceUpdate(id=a.id, x_in=b.x_in),
            InstanceUpdate(id=b.id, x_in=a.x_in),
        ]
        assert packed.update_instances(updates) is True
        assert packed.state.instance(a.id).x_in == b.x_in  # type: ignore[union-attr]

    def test_rotation_update(self, packed: GangBuilderStore) -> None:
        """Test rotation can be set through a batch."""
        a = packed.state.instances[0]
        assert packed.update_instances([InstanceUpdate(id=a.id, rotation=Rotation.DEG_90)])
        assert packed.state.instance(a.id).rotation is Rotation.DEG_90  # type: ignore[union-attr]

    def test_unknown_id_rejects_batch(self, packed: GangBuilderStore) -> None:
        """Test an unknown id rejects the whole batch."""
        a = packed.state.instances[0]
        updates = [InstanceUpdate(id=a.id, y_in=6.0), InstanceUpdate(id="ghost", y_in=1.0)]
        assert packed.update_instances(updates) is False
        assert packed.state.instance(a.id) == a

    def test_duplicate_id_rejects_batch(self, packed: GangBuilderStore) -> None:
        """Test the same instance twice in one batch is rejected."""
        a = packed.state.instances[0]
        updates = [InstanceUpdate(id=a.id, y_in=6.0), InstanceUpdate(id=a.id, y_in=7.0)]
        assert packed.update_instances(updates) is False

    def test_malformed_update_rejected(self, packed: GangBuilderStore) -> None:
        """Test non-finite coordinates are rejected, not raised."""
        a = packed.state.instances[0]
        assert packed.update_instances([{"id": a.id, "x_in": float("nan")}]) is False

    def test_empty_batch(self, packed: GangBuilderStore) -> None:
        """Test an empty batch is accepted and changes nothing."""
        before = packed.state
        assert packed.update_instances([]) is True
        assert packed.state is before


class TestSelection:
    """Tests for selection mutators."""

    @pytest.fixture
    def ids(self, store: GangBuilderStore, add_design: AddDesign) -> list[str]:
        """Ids of three placed instances."""
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 3, auto_pack=True)
        return [i.id for i in store.state.instances]

    def test_set_selected_instance(self, store: GangBuilderStore, ids: list[str]) -> None:
        """Test selecting one instance replaces the set."""
        store.set_selected_instance(ids[0])
        store.set_selected_instance(ids[1])
        assert store.state.selected_instance_ids == (ids[1],)
        assert store.state.selected_instance_id == ids[1]

    def test_clear_with_none(self, store: GangBuilderStore, ids: list[str]) -> None:
        """Test None clears the selection."""
        store.set_selected_instance(ids[0])
        store.set_selected_instance(None)
        assert store.state.selected_instance_ids == ()
        assert store.state.selected_instance_id is None

    def test_select_unknown_is_noop(self, store: GangBuilderStore, ids: list[str]) -> None:
        """Test selecting an unknown id is ignored."""
        store.set_selected_instance(ids[0])
        assert store.set_selected_instance("ghost") is False
        assert store.state.selected_instance_ids == (ids[0],)

    def test_toggle(self, store: GangBuilderStore, ids: list[str]) -> None:
        """Test toggling adds and removes, tracking the latest selection."""
        store.toggle_instance_selection(ids[0])
        store.toggle_instance_selection(ids[1])
        assert store.state.selected_instance_ids == (ids[0], ids[1])
        assert store.state.selected_instance_id == ids[1]
        store.toggle_instance_selection(ids[1])
        assert store.state.selected_instance_ids == (ids[0],)
        assert store.state.selected_instance_id == ids[0]

    def test_set_instance_selection_filters_unknown(
        self, store: GangBuilderStore, ids: list[str]
    ) -> None:
        """Test unknown and duplicate ids are dropped."""
        store.set_instance_selection([ids[2], "ghost", ids[0], ids[2]])
        assert store.state.selected_instance_ids == (ids[2], ids[0])
        assert store.state.selected_instance_id == ids[0]


class TestDeleteAndReset:
    """Tests for delete_instances, clear_instances and reset."""

    def test_delete_instances(self, store: GangBuilderStore, add_design: AddDesign) -> None:
        """Test deleting instances prunes the selection."""
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 3, auto_pack=True)
        a, b, c = (i.id for i in store.state.instances)
        store.set_instance_selection([a, b])

        assert store.delete_instances([b, "ghost"]) is True

        assert [i.id for i in store.state.instances] == [a, c]
        assert store.state.selected_instance_ids == (a,)
        assert store.state.selected_instance_id == a

    def test_delete_nothing(self, store: GangBuilderStore) -> None:
        """Test deleting unknown ids is a no-op."""
        assert store.delete_instances(["ghost"]) is False

    def test_clear_instances_keeps_designs(
        self, store: GangBuilderStore, add_design: AddDesign
    ) -> None:
        """Test clearing the sheet keeps uploaded designs."""
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 3)
        store.clear_instances()
        assert store.state.instances == ()
        assert store.state.design_files == (design,)

    def test_reset(self, store: GangBuilderStore, add_design: AddDesign) -> None:
        """Test reset returns to the initial state but keeps listeners."""
        seen: list[GangBuilderState] = []
        store.subscribe(seen.append)
        design = add_design(2, 2)
        store.add_instances_for_design(design.id, 1)
        store.set_sheet_size("22x24")

        store.reset()

        assert store.state.design_files == ()
        assert store.state.selected_sheet_size_id == "22x12"
        assert seen[-1] == store.state


class TestStateViolations:
    """Tests for the state_violations helper."""

    def test_detects_overlap_and_dangling_design(self) -> None:
        """Test a hand-built inconsistent state is reported."""
        a = PlacedInstance(id="a", design_id="d", x_in=1, y_in=1, width_in=2, height_in=2)
        b = a.model_copy(update={"id": "b", "x_in": 2})
        state = GangBuilderState(selected_sheet_size_id="22x12", instances=(a, b))
        problems = state_violations(state, DEADSPACE)
        assert any("overlaps" in p for p in problems)
        assert any("missing design" in p for p in problems)

    def test_padded_box_used_for_bounds(self) -> None:
        """Test artwork inside the sheet but deadspace outside is flagged."""
        inst = PlacedInstance(id="a", design_id="d", x_in=0, y_in=0, width_in=2, height_in=2)
        assert padded_box(inst, DEADSPACE).x < 0
        state = GangBuilderState(selected_sheet_size_id="22x12", instances=(inst,))
        assert any("bounds" in p for p in state_violations(state, DEADSPACE))


class TestInvariantsUnderRandomMoves:
    """Property tests driving the store with arbitrary batches."""

    @settings(max_examples=40, deadline=None)
    @given(
        moves=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=7),
                st.floats(min_value=-2.0, max_value=24.0),
                st.floats(min_value=-2.0, max_value=14.0),
                st.booleans(),
            ),
            min_size=1,
            max_size=15,
        )
    )
    def test_moves_never_break_layout(
        self, moves: list[tuple[int, float, float, bool]]
    ) -> None:
        """Property: accepted or rejected, every snapshot stays consistent."""
        store = GangBuilderStore(Settings(_env_file=None))  # type: ignore[call-arg]
        design = store.add_design_file(
            {
                "name": "art.png",
                "image_data": "data:image/png;base64,AAAA",
                "natural_width_px": 900,
                "natural_height_px": 600,
            }
        )
        assert design is not None
        store.add_instances_for_design(design.id, 8, auto_pack=True)
        ids = [i.id for i in store.state.instances]

        for index, x, y, rotate in moves:
            target = store.state.instance(ids[index % len(ids)])
            assert target is not None
            rotation = target.rotation.toggled() if rotate else target.rotation
            store.update_instances(
                [InstanceUpdate(id=target.id, x_in=x, y_in=y, rotation=rotation)]
            )
            assert state_violations(store.state, store.deadspace) == []
