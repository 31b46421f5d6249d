"""Tests for territory transfer and applying conflict outcomes."""

import pytest

from py_realms.core.models import RUIN_OWNER_ID, SettlementKind
from py_realms.simulation.conflicts import force_resolve_conflict, start_conflict
from py_realms.simulation.state import CityCondition, ConflictOutcome
from py_realms.simulation.transfer import apply_conflict_resolution, transfer_territory


def ownership(world):
    return {kingdom.id: list(kingdom.cell_ids) for kingdom in world.kingdoms}


def land_accounting(world):
    """Owned cells across kingdoms plus unowned land cells."""
    owned = sum(len(kingdom.cell_ids) for kingdom in world.kingdoms)
    unowned = sum(1 for cell in world.cells if not cell.is_water and cell.kingdom_id is None)
    return owned + unowned


def assert_partition(world):
    owned = [cell_id for kingdom in world.kingdoms for cell_id in kingdom.cell_ids]
    assert len(owned) == len(set(owned))
    assert set(owned) == {cell.id for cell in world.cells if cell.kingdom_id is not None}


def frontier(world, attacker_id, defender_id):
    """Defender cells adjacent to the attacker."""
    cells = world.cells
    return sorted({
        neighbor_id
        for cell in cells if cell.kingdom_id == attacker_id
        for neighbor_id in cell.neighbors if cells[neighbor_id].kingdom_id == defender_id
    })


class TestTransferTerritory:
    """Test moving cells between kingdoms."""

    def test_moves_defender_cells_only(self, striped_world):
        """Test that only the loser's cells move."""
        cells = frontier(striped_world, 0, 1)
        foreign = striped_world.kingdoms[2].cell_ids[0]
        new_world, report = transfer_territory(striped_world, cells + [foreign], 1, 0)

        assert report.moved_cell_ids == cells
        for cell_id in cells:
            assert new_world.cells[cell_id].kingdom_id == 0
        assert new_world.cells[foreign].kingdom_id == 2

        winner = new_world.get_kingdom(0)
        loser = new_world.get_kingdom(1)
        assert set(cells) <= set(winner.cell_ids)
        assert not set(cells) & set(loser.cell_ids)
        assert winner.geography.area == len(winner.cell_ids)
        assert loser.geography.area == len(loser.cell_ids)
        assert_partition(new_world)

    def test_input_world_unchanged(self, striped_world):
        """Test that the input world is not modified."""
        before = ownership(striped_world)
        owners = [cell.kingdom_id for cell in striped_world.cells]

        transfer_territory(striped_world, frontier(striped_world, 0, 1), 1, 0)

        assert ownership(striped_world) == before
        assert [cell.kingdom_id for cell in striped_world.cells] == owners

    def test_conservation(self, striped_world):
        """Test that land is conserved across a transfer."""
        before = land_accounting(striped_world)
        new_world, _ = transfer_territory(striped_world, frontier(striped_world, 0, 1), 1, 0)

        assert land_accounting(new_world) == before

    def test_outlines_recomputed(self, striped_world):
        """Test that outlines change only for touched kingdoms."""
        cells = frontier(striped_world, 0, 1)
        new_world, _ = transfer_territory(striped_world, cells, 1, 0)

        assert new_world.get_kingdom(0).outline.area > striped_world.get_kingdom(0).outline.area
        assert new_world.get_kingdom(1).outline.area < striped_world.get_kingdom(1).outline.area
        # Untouched kingdom keeps its outline
        assert new_world.get_kingdom(2).outline is striped_world.get_kingdom(2).outline

    def test_nothing_to_move(self, striped_world):
        """Test transfer of an empty cell set."""
        new_world, report = transfer_territory(striped_world, [], 1, 0)

        assert new_world is striped_world
        assert report.moved_cell_ids == []

    def test_unknown_kingdom(self, striped_world):
        """Test transfer to an unknown kingdom."""
        new_world, report = transfer_territory(striped_world, [1, 2], 1, 99)

        assert new_world is striped_world
        assert report.moved_cell_ids == []


class TestCapitalLoss:
    """Test capture of a capital."""

    def test_city_promoted(self, striped_world):
        """Test that a city is promoted when the capital falls."""
        loser = striped_world.get_kingdom(1)
        assert loser.cities, "kingdom needs cities for promotion"
        first_city = loser.cities[0]

        new_world, report = transfer_territory(striped_world, [loser.capital.cell_id], 1, 0)
        new_loser = new_world.get_kingdom(1)
        winner = new_world.get_kingdom(0)

        assert report.captured_settlement_ids == [loser.capital.id]
        assert report.promoted_capital_id == first_city.id
        assert not report.destroyed
        assert new_loser.capital.id == first_city.id
        assert new_loser.capital.kind == SettlementKind.CAPITAL
        assert first_city.id not in [city.id for city in new_loser.cities]
        assert len(new_loser.cell_ids) > 0
        assert not new_loser.destroyed

        captured = next(city for city in winner.cities if city.id == loser.capital.id)
        assert captured.kind == SettlementKind.CITY
        assert captured.kingdom_id == 0

    def test_kingdom_destroyed(self, striped_world):
        """Test destruction of a kingdom that loses every settlement."""
        loser = striped_world.get_kingdom(1)
        doomed = [settlement.cell_id for settlement in loser.settlements]
        before = land_accounting(striped_world)

        new_world, report = transfer_territory(striped_world, doomed, 1, 0)
        destroyed = new_world.get_kingdom(1)

        assert report.destroyed
        assert report.ruin_id == loser.capital.id
        assert destroyed.destroyed
        assert destroyed.cell_ids == []
        assert destroyed.cities == []
        assert destroyed.outline is None
        assert destroyed.capital.kind == SettlementKind.RUIN
        assert destroyed.capital.kingdom_id == RUIN_OWNER_ID
        assert destroyed.capital.position.x == -9999
        assert destroyed.capital.name == f"Ruins of {loser.capital.name}"

        assert all(cell.kingdom_id != 1 for cell in new_world.cells)
        assert set(report.released_cell_ids).isdisjoint(doomed)
        assert land_accounting(new_world) == before
        assert_partition(new_world)

        winner_city_ids = {city.id for city in new_world.get_kingdom(0).cities}
        assert {city.id for city in loser.cities} <= winner_city_ids
        assert loser.capital.id not in winner_city_ids
        assert 1 not in [kingdom.id for kingdom in new_world.active_kingdoms]

    def test_destroyed_kingdom_cannot_lose_more(self, striped_world):
        """Test that a destroyed kingdom has nothing left to lose."""
        loser = striped_world.get_kingdom(1)
        doomed = [settlement.cell_id for settlement in loser.settlements]
        new_world, _ = transfer_territory(striped_world, doomed, 1, 0)

        again, report = transfer_territory(new_world, doomed, 1, 0)

        assert again is new_world
        assert report.moved_cell_ids == []


class TestApplyConflictResolution:
    """Test carrying out forced outcomes."""

    def resolved(self, state, cells, outcome):
        state, conflict = start_conflict(state, 0, 1, cells)
        return force_resolve_conflict(state, conflict.id, outcome), conflict.id

    def test_defender_victory_moves_nothing(self, striped_world, striped_state):
        """Test that a defender victory moves no cells."""
        state, conflict_id = self.resolved(
            striped_state, frontier(striped_world, 0, 1), ConflictOutcome.DEFENDER_VICTORY
        )

        new_world, new_state, report = apply_conflict_resolution(striped_world, state, conflict_id)

        assert ownership(new_world) == ownership(striped_world)
        assert report.outcome == ConflictOutcome.DEFENDER_VICTORY
        assert report.moved_cell_ids == []
        assert new_state is state

    def test_retreat_moves_nothing(self, striped_world, striped_state):
        """Test that a retreat moves no cells."""
        state, conflict_id = self.resolved(
            striped_state, frontier(striped_world, 0, 1), ConflictOutcome.RETREAT
        )

        new_world, _, report = apply_conflict_resolution(striped_world, state, conflict_id)

        assert new_world is striped_world
        assert report.outcome == ConflictOutcome.RETREAT

    def test_attacker_victory(self, striped_world, striped_state):
        """Test that an attacker victory moves the contested cells."""
        cells = frontier(striped_world, 0, 1)
        state, conflict_id = self.resolved(striped_state, cells, ConflictOutcome.ATTACKER_VICTORY)

        new_world, new_state, report = apply_conflict_resolution(striped_world, state, conflict_id)

        assert report.moved_cell_ids == cells
        assert all(new_world.cells[c].kingdom_id == 0 for c in cells)
        # The conflict stays until it is cleared
        assert new_state.find_conflict(conflict_id) is not None

    def test_captured_locations_change_owner(self, striped_world, striped_state):
        """Test that captured locations change owner in the ledger."""
        loser = striped_world.get_kingdom(1)
        state, conflict_id = self.resolved(
            striped_state, [loser.capital.cell_id], ConflictOutcome.ATTACKER_VICTORY
        )

        _, new_state, _ = apply_conflict_resolution(striped_world, state, conflict_id)

        assert new_state.locations[loser.capital.id].kingdom_id == 0
        assert new_state.locations[loser.cities[0].id].kingdom_id == 1
        assert 1 in new_state.kingdoms

    def test_destruction_updates_ledger(self, striped_world, striped_state):
        """Test ledger after a kingdom is destroyed."""
        loser = striped_world.get_kingdom(1)
        doomed = [settlement.cell_id for settlement in loser.settlements]
        state, conflict_id = self.resolved(striped_state, doomed, ConflictOutcome.ATTACKER_VICTORY)

        _, new_state, report = apply_conflict_resolution(striped_world, state, conflict_id)

        assert report.destroyed
        assert 1 not in new_state.kingdoms
        ruin = new_state.locations[loser.capital.id]
        assert ruin.condition == CityCondition.RUINED
        assert ruin.kingdom_id == RUIN_OWNER_ID
        for city in loser.cities:
            assert new_state.locations[city.id].kingdom_id == 0

    def test_unresolved_conflict_is_noop(self, striped_world, striped_state):
        """Test that an unresolved conflict cannot be applied."""
        state, conflict = start_conflict(striped_state, 0, 1, [1])

        world, new_state, report = apply_conflict_resolution(striped_world, state, conflict.id)

        assert report is None
        assert world is striped_world
        assert new_state is state

    def test_unknown_conflict_is_noop(self, striped_world, striped_state):
        """Test that an unknown conflict cannot be applied."""
        world, state, report = apply_conflict_resolution(striped_world, striped_state, "missing")

        assert report is None
        assert world is striped_world
        assert state is striped_state


@pytest.mark.parametrize("attacker_id, defender_id", [(0, 1), (2, 1), (1, 0)])
def test_neighbor_lists_refreshed(striped_world, attacker_id, defender_id):
    """Test that neighbor lists match the new borders."""
    new_world, _ = transfer_territory(
        striped_world, frontier(striped_world, attacker_id, defender_id), defender_id, attacker_id
    )
    for kingdom in new_world.kingdoms:
        expected = set()
        for cell_id in kingdom.cell_ids:
            for neighbor_id in new_world.cells[cell_id].neighbors:
                owner = new_world.cells[neighbor_id].kingdom_id
                if owner is not None and owner != kingdom.id:
                    expected.add(owner)
        assert kingdom.geography.neighboring_kingdoms == sorted(expected)
