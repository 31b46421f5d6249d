"""Name banks and color palettes for kingdoms and cities."""

from typing import Dict, List, Tuple

from .biomes import ClimateZone

KINGDOM_NAMES: Dict[ClimateZone, List[str]] = {
    ClimateZone.NORTH: [
        "Frostmere", "Winterhold", "Starkhaven", "Icevein", "Glaciera", "Northgard",
    ],
    ClimateZone.CENTRAL: [
        "Eldoria", "Mythralis", "Shadowfen", "Auroria", "Ironvale", "Thornwood",
        "Ravenmoor", "Highgarden", "Riverrun",
    ],
    ClimateZone.SOUTH: [
        "Sunspire", "Sandstone", "Oasis", "Dunehaven", "Solara", "Vermilion", "Goldcoast",
    ],
}

CITY_NAMES: List[str] = [
    "Ravenshollow", "Ironforge", "Moonhaven", "Thornwick", "Crystalspire",
    "Dragonmere", "Willowdale", "Stonebridge", "Mistwood", "Goldcrest",
    "Silverkeep", "Ashford", "Blackwater", "Redcliff", "Greendale",
    "Frostfall", "Emberhearth", "Windshear", "Oakheart", "Starfall",
    "Duskhollow", "Brightwater", "Shadowmere", "Thunderpeak", "Silentwood",
]

# (fill, border) pairs
KINGDOM_COLORS: Dict[ClimateZone, List[Tuple[str, str]]] = {
    ClimateZone.NORTH: [
        ("#a8d5e5", "#5a9ab8"),  # ice blue
        ("#b8c5d6", "#7a8fa6"),  # steel grey
        ("#c4d4e0", "#8ba3b8"),  # frost
        ("#9fb8c7", "#6890a5"),  # slate blue
        ("#d1dfe8", "#9ab5c7"),  # pale winter
    ],
    ClimateZone.CENTRAL: [
        ("#a5a58d", "#6b705c"),  # olive
        ("#b7b7a4", "#7f7f6f"),  # sage
        ("#c9ada7", "#9a8c98"),  # dusty rose
        ("#caffbf", "#80b268"),  # spring green
        ("#b5838d", "#6d6875"),  # mauve
        ("#a8c5a0", "#6b8e63"),  # forest
    ],
    ClimateZone.SOUTH: [
        ("#f4d58d", "#c9a227"),  # golden sand
        ("#ddbea9", "#a5a58d"),  # desert tan
        ("#ffd6a5", "#d4a373"),  # amber
        ("#e8c49a", "#b8956a"),  # terracotta
        ("#f0c987", "#c9a54a"),  # sunlit gold
    ],
}
