"""Tests for the Simulation session service, runtime ledger and event log."""

import pytest

from py_realms.core.alea_prng import AleaPRNG
from py_realms.simulation import EventLog, EventType, Simulation
from py_realms.simulation.state import (
    CityCondition, ConflictOutcome, ConflictStatus, Season, WorldDate, generate_initial_state,
    merge_kingdom_update, next_date,
)


@pytest.fixture
def simulation(striped_world):
    return Simulation(striped_world, event_log=EventLog(capacity=50))


class TestInitialState:
    """Test the ledger seeded from a world."""

    def test_kingdoms(self, striped_world):
        """Test initial kingdom ledger."""
        state = generate_initial_state(striped_world, AleaPRNG(1))

        assert set(state.kingdoms) == {k.id for k in striped_world.kingdoms}
        for kingdom in striped_world.kingdoms:
            ledger = state.kingdoms[kingdom.id]
            assert ledger.ruler.name == f"King of {kingdom.name}"
            assert ledger.resources.gold == 1000
            assert ledger.resources.mana == 500
            assert ledger.resources.food == 1000
            assert 500 <= ledger.military.strength <= 999
            assert ledger.military.readiness == 100

    def test_locations(self, striped_world):
        """Test initial location ledger."""
        state = generate_initial_state(striped_world, AleaPRNG(1))
        kingdom = striped_world.kingdoms[0]

        capital = state.locations[kingdom.capital.id]
        assert capital.population == 5000
        assert capital.defense == 1000
        assert capital.condition == CityCondition.INTACT
        city = state.locations[kingdom.cities[0].id]
        assert city.population == 1000
        assert city.defense == 300
        assert city.kingdom_id == kingdom.id

    def test_date(self, striped_world):
        """Test starting date."""
        state = generate_initial_state(striped_world, AleaPRNG(1))
        assert state.date == WorldDate(year=452, season=Season.SPRING, day=1)


class TestLedgerUpdates:
    """Test dates and partial ledger updates."""

    def test_next_date_rolls_year(self):
        """Test that winter rolls over into the next year."""
        date = WorldDate(year=452, season=Season.WINTER)
        assert next_date(date) == WorldDate(year=453, season=Season.SPRING)
        assert next_date(WorldDate(year=1)).season == Season.SUMMER

    def test_merge_kingdom_update(self, striped_state):
        """Test that partial updates merge into whole sub-records."""
        existing = striped_state.kingdoms[0]
        updated = merge_kingdom_update(existing, {"resources": {"gold": 5}, "military": {"strength": -40}})

        assert updated.resources.gold == 5
        assert updated.resources.mana == existing.resources.mana
        assert updated.military.strength == 0
        assert updated.military.readiness == existing.military.readiness
        assert updated.ruler == existing.ruler
        # Frozen records are replaced, not edited
        assert existing.resources.gold == 1000

    def test_merge_ignores_id(self, striped_state):
        """Test that updates never change the kingdom id."""
        updated = merge_kingdom_update(striped_state.kingdoms[0], {"id": 99})
        assert updated.id == 0


class TestSimulation:
    """Test the command surface."""

    def test_advance_season(self, simulation):
        """Test advancing a full year."""
        old_state = simulation.state
        for _ in range(4):
            simulation.advance_season()

        assert simulation.state.date.year == 453
        assert simulation.state.date.season == Season.SPRING
        assert old_state.date.year == 452
        assert len(simulation.events.recent()) == 4

    def test_tick(self, simulation):
        """Test economy tick."""
        gold = {k: v.resources.gold for k, v in simulation.state.kingdoms.items()}
        simulation.tick()

        for kingdom_id, value in gold.items():
            assert simulation.state.kingdoms[kingdom_id].resources.gold == value + 1

    def test_update_kingdom_state(self, simulation):
        """Test kingdom update through the service."""
        updated = simulation.update_kingdom_state(1, {"ruler": {"personality": "Aggressive"}})

        assert updated.ruler.personality == "Aggressive"
        assert simulation.state.kingdoms[1].ruler.personality == "Aggressive"
        assert simulation.update_kingdom_state(99, {"resources": {"gold": 1}}) is None

    def test_update_location_state(self, simulation, striped_world):
        """Test location update through the service."""
        location_id = striped_world.kingdoms[0].capital.id
        updated = simulation.update_location_state(location_id, {"condition": "BESIEGED", "defense": 10})

        assert updated.condition == CityCondition.BESIEGED
        assert updated.defense == 10
        assert simulation.update_location_state("nowhere", {"defense": 1}) is None

    def test_full_war(self, simulation, striped_world):
        """Conquest, battle, forced resolution, transfer and cleanup."""
        simulation.update_kingdom_state(0, {"military": {"strength": 900}})
        simulation.update_kingdom_state(1, {"military": {"strength": 300}})
        pairs = simulation.border_cells(0, 1)
        assert pairs

        conflict = simulation.plan_conquest(pairs[0][1], 0)
        assert conflict.attacker_id == 0
        assert conflict.defender_id == 1

        result = simulation.resolve_battle_round(conflict.id, random_factor=1.0)
        assert result.status == ConflictStatus.ATTACKER_WINNING

        simulation.force_resolve_conflict(conflict.id, ConflictOutcome.ATTACKER_VICTORY)
        old_world = simulation.world
        report = simulation.apply_conflict_resolution(conflict.id)

        assert report.moved_cell_ids
        assert simulation.world is not old_world
        for cell_id in report.moved_cell_ids:
            assert simulation.world.cells[cell_id].kingdom_id == 0
            assert old_world.cells[cell_id].kingdom_id == 1

        simulation.clear_conflict(conflict.id)
        assert simulation.get_conflict(0, 1) is None

        types = [event.type for event in simulation.events.recent()]
        assert types[-5:] == [
            EventType.CONFLICT_STARTED,
            EventType.ROUND_RESOLVED,
            EventType.CONFLICT_RESOLVED,
            EventType.TERRITORY_TRANSFERRED,
            EventType.CONFLICT_CLEARED,
        ]

    def test_plan_conquest_on_own_land(self, simulation, striped_world):
        """Test that attacking own land opens nothing."""
        assert simulation.plan_conquest(striped_world.kingdoms[0].capital.cell_id, 0) is None

    def test_plan_conquest_at_coordinates(self, simulation, striped_world):
        """Test attacking by map coordinates."""
        target = striped_world.get_kingdom(1).capital
        conflict = simulation.plan_conquest_at(target.position.x, target.position.y, 0)

        assert conflict.defender_id == 1
        assert target.cell_id in conflict.contested_cell_ids

    def test_plan_conquest_offshore(self, simulation, offshore_click):
        """Test that an attack aimed just off the coast hits the coastal cell."""
        x, y, coastal_id = offshore_click
        conflict = simulation.plan_conquest_at(x, y, 0)

        assert conflict is not None
        assert conflict.defender_id == 1
        assert conflict.contested_cell_ids[0] == coastal_id

    @pytest.mark.parametrize("updates", [
        {"military": {"strength": "lots"}},
        {"resources": {"gold": "plenty"}},
        {"ruler": "nobody"},
    ])
    def test_invalid_kingdom_update_is_noop(self, simulation, updates):
        """Test that an update with invalid values is rejected without touching the ledger."""
        before = simulation.state
        events = len(simulation.events)

        assert simulation.update_kingdom_state(0, updates) is None
        assert simulation.state is before
        assert len(simulation.events) == events

    def test_invalid_location_update_is_noop(self, simulation, striped_world):
        """Test that a misspelled condition leaves the location unchanged."""
        location_id = striped_world.kingdoms[0].capital.id
        before = simulation.state

        assert simulation.update_location_state(location_id, {"condition": "ON_FIRE"}) is None
        assert simulation.update_location_state(location_id, {"population": "many"}) is None
        assert simulation.state is before
        assert simulation.state.locations[location_id].condition == CityCondition.INTACT

    def test_invalid_outcome_is_noop(self, simulation):
        """Test that forcing an unknown outcome leaves the conflict open."""
        conflict = simulation.start_conflict(0, 1, [1])

        assert simulation.force_resolve_conflict(conflict.id, "SURRENDER") is None
        assert simulation.state.find_conflict(conflict.id).status == ConflictStatus.PENDING

    def test_stale_ids_never_raise(self, simulation):
        """Test that stale ids are ignored by every command."""
        assert simulation.resolve_battle_round("gone") is None
        assert simulation.force_resolve_conflict("gone", ConflictOutcome.RETREAT) is None
        assert simulation.apply_conflict_resolution("gone") is None
        assert simulation.start_conflict(0, 99, [1]) is None
        simulation.clear_conflict("gone")
        assert simulation.state.active_conflicts == ()

    def test_same_seed_same_runtime(self, striped_world):
        """Test that same world produces same initial ledger."""
        first = Simulation(striped_world)
        second = Simulation(striped_world)

        assert first.state.kingdoms == second.state.kingdoms


class TestEventLog:
    """Test the bounded event log."""

    def test_capacity(self):
        """Test that the log keeps only the newest events."""
        log = EventLog(capacity=3)
        for i in range(5):
            log.record(EventType.SEASON_ADVANCED, index=i)

        events = log.recent()
        assert len(log) == 3
        assert [e.data["index"] for e in events] == [2, 3, 4]
        assert [e.sequence for e in events] == [3, 4, 5]

    def test_recent_limit(self):
        """Test limiting recent events."""
        log = EventLog()
        for i in range(4):
            log.record(EventType.TERRITORY_TRANSFERRED, index=i)

        assert [e.data["index"] for e in log.recent(2)] == [2, 3]
        assert log.recent(0) == []

    def test_invalid_capacity(self):
        """Test that a log needs room for one event."""
        with pytest.raises(ValueError):
            EventLog(capacity=0)

    def test_clear(self):
        log = EventLog()
        log.record(EventType.CONFLICT_CLEARED)
        log.clear()
        assert len(log) == 0
