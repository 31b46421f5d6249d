"""
Runtime simulation: state ledger, conflict engine and territory transfer.
"""

from .conflicts import BattleResult, plan_conquest, resolve_battle_round, start_conflict
from .engine import Simulation
from .events import EventLog, EventType, SimulationEvent
from .state import (
    ActiveConflict,
    CityCondition,
    ConflictOutcome,
    ConflictStatus,
    KingdomState,
    LocationState,
    Season,
    WorldState,
    generate_initial_state,
)
from .transfer import TransferReport, apply_conflict_resolution, transfer_territory

__all__ = ['BattleResult', 'plan_conquest', 'resolve_battle_round', 'start_conflict',
           'Simulation', 'EventLog', 'EventType', 'SimulationEvent',
           'ActiveConflict', 'CityCondition', 'ConflictOutcome', 'ConflictStatus',
           'KingdomState', 'LocationState', 'Season', 'WorldState', 'generate_initial_state',
           'TransferReport', 'apply_conflict_resolution', 'transfer_territory']
