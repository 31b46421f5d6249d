"""
Generation and simulation options.

These models validate user input at the boundary so the generation
pipeline and the simulation engine never see nonsensical parameters.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, Field, model_validator


class WorldGenConfig(BaseModel):
    """Configuration for one world generation run."""

    width: float = Field(default=1400, gt=0, description="Canvas width")
    height: float = Field(default=1100, gt=0, description="Canvas height")
    num_kingdoms: int = Field(default=5, ge=0, le=64, description="Number of kingdoms")
    num_points: int = Field(default=2500, ge=4, description="Number of sampled cells")
    num_cities_per_kingdom: int = Field(default=3, ge=0, description="Cities per kingdom")
    seed: Optional[int] = Field(default=None, description="Seed; derived from the clock when absent")
    relaxation_passes: int = Field(default=2, ge=0, description="Lloyd relaxation passes")
    capital_attempts: int = Field(default=50, ge=1, description="Random candidates per capital")
    distant_lands: bool = Field(default=True, description="Generate decorative horizon lands")


class ConflictOptions(BaseModel):
    """Tuning constants of the conflict engine."""

    random_factor_range: Tuple[float, float] = Field(
        default=(0.7, 1.3), description="Band of the per-round random factor"
    )
    attacker_winning_ratio: float = Field(default=1.3, description="Ratio above which the attacker wins")
    defender_winning_ratio: float = Field(default=0.7, description="Ratio below which the defender wins")

    # Inclusive (low, high) losses per side
    winner_losses: Tuple[int, int] = Field(default=(10, 29))
    loser_losses: Tuple[int, int] = Field(default=(30, 69))
    stalemate_losses: Tuple[int, int] = Field(default=(15, 39))

    contest_skip_probability: float = Field(
        default=0.3, ge=0.0, le=1.0,
        description="Chance that a defender neighbor is left out of a contested set",
    )
    max_target_distance: float = Field(
        default=40.0, gt=0, description="Farthest a map click may be from the targeted cell"
    )

    @model_validator(mode="after")
    def _check_ratios(self) -> "ConflictOptions":
        low, high = self.random_factor_range
        if low > high:
            raise ValueError("random_factor_range must be (low, high)")
        if self.defender_winning_ratio > self.attacker_winning_ratio:
            raise ValueError("defender_winning_ratio must not exceed attacker_winning_ratio")
        return self


class InitialStateOptions(BaseModel):
    """Starting values of the runtime ledger."""

    year: int = Field(default=452)
    gold: int = Field(default=1000, ge=0)
    mana: int = Field(default=500, ge=0)
    food: int = Field(default=1000, ge=0)
    strength_range: Tuple[int, int] = Field(default=(500, 999))
    readiness: int = Field(default=100, ge=0, le=100)
    capital_population: int = Field(default=5000, ge=0)
    capital_defense: int = Field(default=1000, ge=0)
    city_population: int = Field(default=1000, ge=0)
    city_defense: int = Field(default=300, ge=0)
