"""
Territory partitioning: capital placement and kingdom expansion.

Process:
1. select_capitals() - Approximate farthest-point placement of capitals
2. expand_kingdoms() - Randomized multi-source flood fill over land cells

Land that no capital can reach (isolated islands) stays unowned.
"""

import math
from typing import List, Optional, Sequence

import structlog

from .alea_prng import AleaPRNG
from .biomes import BiomeType
from .models import Cell

logger = structlog.get_logger()

# Biomes where no capital is founded
CAPITAL_EXCLUDED_BIOMES = frozenset({BiomeType.BEACH, BiomeType.MOUNTAIN, BiomeType.OCEAN})


def is_capital_site(cell: Cell) -> bool:
    """Whether a cell may host a capital."""
    return not cell.is_water and cell.biome not in CAPITAL_EXCLUDED_BIOMES


def _distance(a: Cell, b: Cell) -> float:
    return math.hypot(a.center.x - b.center.x, a.center.y - b.center.y)


class TerritoryPartitioner:
    """Places capitals and grows kingdoms outward from them."""

    def __init__(self, cells: List[Cell], prng: AleaPRNG, capital_attempts: int = 50):
        """
        Initialize partitioner.

        Args:
            cells: Classified cells; ``kingdom_id`` is written in place
            prng: Generator shared with the rest of the pipeline
            capital_attempts: Random candidates examined per capital
        """
        self.cells = cells
        self.prng = prng
        self.capital_attempts = capital_attempts
        self.land_indices = [cell.id for cell in cells if not cell.is_water]

    def select_capitals(self, count: int) -> List[int]:
        """
        Choose capital cells spread across the land.

        Each capital is the best of ``capital_attempts`` random land cells,
        scored by the distance to the nearest capital already placed.

        Returns:
            Capital cell ids in kingdom order; shorter than ``count`` only
            if the map runs out of land
        """
        logger.info("Placing capitals", count=count, land_cells=len(self.land_indices))
        capitals: List[int] = []
        if not self.land_indices:
            logger.warning("No land cells, no capitals placed")
            return capitals

        for kingdom_id in range(count):
            best_idx = -1
            max_min_dist = -1.0

            for _ in range(self.capital_attempts):
                candidate = self.land_indices[int(self.prng.random() * len(self.land_indices))]
                if candidate in capitals:
                    continue
                if not is_capital_site(self.cells[candidate]):
                    continue

                if capitals:
                    min_dist = min(
                        _distance(self.cells[capital], self.cells[candidate]) for capital in capitals
                    )
                else:
                    min_dist = math.inf

                if min_dist > max_min_dist:
                    max_min_dist = min_dist
                    best_idx = candidate

            if best_idx == -1:
                best_idx = self._fallback_capital(capitals)
                if best_idx is None:
                    logger.warning("No free land left for capital", kingdom_id=kingdom_id)
                    break
                logger.warning(
                    "No eligible capital site sampled, using fallback",
                    kingdom_id=kingdom_id,
                    cell_id=best_idx,
                )

            capitals.append(best_idx)
            self.cells[best_idx].kingdom_id = kingdom_id

        logger.info("Capitals placed", capitals=capitals)
        return capitals

    def _fallback_capital(self, capitals: Sequence[int]) -> Optional[int]:
        """First eligible land cell by index, else first free land cell."""
        taken = set(capitals)
        for idx in self.land_indices:
            if idx not in taken and is_capital_site(self.cells[idx]):
                return idx
        for idx in self.land_indices:
            if idx not in taken:
                return idx
        return None

    def expand_kingdoms(self, capitals: Sequence[int]) -> None:
        """
        Grow kingdoms from their capitals over land.

        The work queue starts with the capitals in shuffled order; each step
        pops a random entry and claims all of its unclaimed land neighbors
        for the same kingdom.
        """
        logger.info("Expanding kingdoms territorially")

        queue = [(idx, kingdom_id) for kingdom_id, idx in enumerate(capitals)]
        self.prng.shuffle(queue)

        claimed = len(queue)
        while queue:
            idx, kingdom_id = queue.pop(int(self.prng.random() * len(queue)))

            for neighbor_id in self.cells[idx].neighbors:
                neighbor = self.cells[neighbor_id]
                if not neighbor.is_water and neighbor.kingdom_id is None:
                    neighbor.kingdom_id = kingdom_id
                    queue.append((neighbor_id, kingdom_id))
                    claimed += 1

        unowned = len(self.land_indices) - claimed
        if unowned:
            logger.info("Unreachable land left unowned", cells=unowned)
        logger.info("Kingdom expansion complete", claimed_cells=claimed)

    def partition(self, count: int) -> List[int]:
        """Place capitals and expand; returns the capital cell ids."""
        capitals = self.select_capitals(count)
        self.expand_kingdoms(capitals)
        return capitals
