"""Velogames scoring tables and the classics race schedule.

Scoring tables are immutable values built once per race and passed
explicitly to the aggregator; there is no global mutable lookup.

Tables:
    SCORING_CAT1 - Monuments and Worlds
    SCORING_CAT2 - WorldTour classics
    SCORING_CAT3 - Semi-classics
    SCORING_STAGE - Aggregate grand tour table (assists/breakaways implicit)

Key Functions:
    get_scoring - Table for a category (1, 2, 3 or "stage")
    find_race - Schedule lookup by partial race name
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import ValidationError

from breakaway.config import N_ASSIST_POSITIONS, N_BREAKAWAY_SECTORS
from breakaway.data.schemas import ScoringTableSchema


@dataclass(frozen=True)
class ScoringTable:
    """Scoring rules for a single race category.

    Attributes:
        finish_points: Points for 1st, 2nd, ... (positions beyond the table score 0).
        assist_points: Points for being a teammate of the 1st, 2nd, 3rd placed rider.
        breakaway_points: Points per breakaway sector.
        n_sectors: Breakaway sectors per race (50% distance, 50km, 20km, 10km).
    """

    finish_points: Tuple[int, ...]
    assist_points: Tuple[int, ...]
    breakaway_points: int = 0
    n_sectors: int = N_BREAKAWAY_SECTORS

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the table stays hashable
        object.__setattr__(self, "finish_points", tuple(int(p) for p in self.finish_points))
        object.__setattr__(self, "assist_points", tuple(int(p) for p in self.assist_points))

        if not self.finish_points:
            raise ValueError("Scoring table needs at least one finish position")
        if any(p < 0 for p in self.finish_points):
            raise ValueError("Finish points must be non-negative")
        if any(a < b for a, b in zip(self.finish_points, self.finish_points[1:])):
            raise ValueError(
                f"Finish points must be non-increasing by position: {self.finish_points}"
            )
        if len(self.assist_points) != N_ASSIST_POSITIONS:
            raise ValueError(
                f"Assist points need exactly {N_ASSIST_POSITIONS} entries, "
                f"got {len(self.assist_points)}"
            )
        if any(p < 0 for p in self.assist_points):
            raise ValueError("Assist points must be non-negative")
        if self.breakaway_points < 0:
            raise ValueError("Breakaway points must be non-negative")
        if self.n_sectors < 0:
            raise ValueError("Number of breakaway sectors must be non-negative")

    @property
    def max_position(self) -> int:
        """Last position that scores finish points."""
        return len(self.finish_points)

    @property
    def has_breakaways(self) -> bool:
        return self.breakaway_points > 0 and self.n_sectors > 0

    def finish_array(self, n_positions: int) -> np.ndarray:
        """Finish points indexed by position (index 0 unused), zero-padded to n_positions."""
        size = max(n_positions, self.max_position) + 1
        arr = np.zeros(size, dtype=np.float64)
        arr[1 : self.max_position + 1] = self.finish_points
        return arr

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoringTable":
        """Build a table from structured data (e.g. parsed JSON).

        Raises:
            ValueError: If the data does not describe a valid table.
        """
        try:
            schema = ScoringTableSchema.model_validate(dict(data))
        except ValidationError as e:
            raise ValueError(f"Malformed scoring table: {e}") from e
        return cls(
            finish_points=tuple(schema.finish_points),
            assist_points=tuple(schema.assist_points),
            breakaway_points=schema.breakaway_points,
            n_sectors=schema.n_sectors,
        )

    def to_dict(self) -> dict:
        return {
            "finish_points": list(self.finish_points),
            "assist_points": list(self.assist_points),
            "breakaway_points": self.breakaway_points,
            "n_sectors": self.n_sectors,
        }


# Superclassico Sixes 2025 scores (velogames.com/sixes-superclasico/2025/scores.php)
SCORING_CAT1 = ScoringTable(
    finish_points=(
        600, 540, 480, 420, 360, 330, 300, 285, 270, 255,
        240, 228, 216, 204, 192, 180, 168, 156, 144, 132,
        120, 108, 96, 84, 72, 60, 48, 36, 24, 12,
    ),
    assist_points=(90, 60, 30),
    breakaway_points=60,
)

SCORING_CAT2 = ScoringTable(
    finish_points=(
        450, 405, 360, 315, 270, 246, 228, 216, 204, 192,
        180, 171, 162, 153, 144, 135, 126, 117, 108, 99,
        90, 81, 72, 63, 54, 45, 36, 27, 18, 9,
    ),
    assist_points=(60, 40, 20),
    breakaway_points=45,
)

SCORING_CAT3 = ScoringTable(
    finish_points=(
        300, 270, 240, 210, 180, 165, 156, 147, 138, 129,
        120, 114, 108, 102, 96, 90, 84, 78, 72, 66,
        60, 54, 48, 42, 36, 30, 24, 18, 12, 6,
    ),
    assist_points=(45, 30, 15),
    breakaway_points=30,
)

# Overall GC position -> total VG points across a grand tour. Calibrated from
# historical results (winners 3000-4000, top 10 1000-2000). Assist and
# breakaway points are already inside these totals.
SCORING_STAGE = ScoringTable(
    finish_points=(
        3500, 3100, 2800, 2500, 2200, 2000, 1850, 1700, 1550, 1400,
        1280, 1170, 1070, 980, 900, 830, 760, 700, 650, 600,
        555, 515, 480, 445, 415, 385, 360, 335, 315, 295,
    ),
    assist_points=(0, 0, 0),
    breakaway_points=0,
    n_sectors=0,
)

_TABLES = {1: SCORING_CAT1, 2: SCORING_CAT2, 3: SCORING_CAT3, "stage": SCORING_STAGE}


def get_scoring(category: Union[int, str]) -> ScoringTable:
    """Return the scoring table for a race category.

    One-day categories: 1 (monuments), 2 (WT classics), 3 (semi-classics).
    Stage races: "stage".

    Raises:
        ValueError: For an unknown category.
    """
    if isinstance(category, str) and category.isdigit():
        category = int(category)
    if isinstance(category, bool) or category not in _TABLES:
        raise ValueError(
            f"Invalid scoring category: {category!r}. Must be 1, 2, 3 or 'stage'."
        )
    return _TABLES[category]


# -----------------------------------------------------------------------------
# Race schedule
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RaceInfo:
    """A Superclassico race: name, date, scoring category, history slug."""

    name: str
    date: str
    category: int
    history_slug: str


SUPERCLASICO_RACES_2025: Tuple[RaceInfo, ...] = (
    RaceInfo("Omloop Nieuwsblad", "2025-03-01", 2, "omloop-het-nieuwsblad"),
    RaceInfo("Kuurne-Brussel-Kuurne", "2025-03-02", 3, "kuurne-brussel-kuurne"),
    RaceInfo("Trofeo Laigueglia", "2025-03-05", 3, "trofeo-laigueglia"),
    RaceInfo("Strade Bianche", "2025-03-08", 2, "strade-bianche"),
    RaceInfo("Milano-Torino", "2025-03-19", 3, "milano-torino"),
    RaceInfo("Milano-Sanremo", "2025-03-22", 1, "milano-sanremo"),
    RaceInfo("Classic Brugge-De Panne", "2025-03-26", 2, "classic-brugge-de-panne"),
    RaceInfo("E3 Saxo Classic", "2025-03-28", 2, "e3-harelbeke"),
    RaceInfo("Gent-Wevelgem", "2025-03-30", 2, "gent-wevelgem"),
    RaceInfo("Dwars door Vlaanderen", "2025-04-02", 2, "dwars-door-vlaanderen"),
    RaceInfo("Ronde van Vlaanderen", "2025-04-06", 1, "ronde-van-vlaanderen"),
    RaceInfo("Scheldeprijs", "2025-04-09", 3, "scheldeprijs"),
    RaceInfo("Paris-Roubaix", "2025-04-13", 1, "paris-roubaix"),
    RaceInfo("De Brabantse Pijl", "2025-04-18", 3, "de-brabantse-pijl"),
    RaceInfo("Amstel Gold Race", "2025-04-20", 2, "amstel-gold-race"),
    RaceInfo("La Fleche Wallonne", "2025-04-23", 2, "la-fleche-wallonne"),
    RaceInfo("Liege-Bastogne-Liege", "2025-04-27", 1, "liege-bastogne-liege"),
    RaceInfo("Eschborn-Frankfurt", "2025-05-01", 2, "eschborn-frankfurt"),
    RaceInfo("Grand Prix du Morbihan", "2025-05-10", 3, "grand-prix-du-morbihan"),
    RaceInfo("Tro-Bro Leon", "2025-05-11", 3, "tro-bro-leon"),
    RaceInfo("Classique Dunkerque", "2025-05-13", 3, "quatre-jours-de-dunkerque"),
    RaceInfo("Brussels Cycling Classic", "2025-06-08", 2, "brussels-cycling-classic"),
    RaceInfo("Dwars door het Hageland", "2025-06-14", 3, "dwars-door-het-hageland"),
    RaceInfo("Copenhagen Sprint", "2025-06-22", 2, "copenhagen-sprint"),
    RaceInfo("Donostia San Sebastian Klasikoa", "2025-08-02", 2, "donostia-san-sebastian-klasikoa"),
    RaceInfo("Circuit Franco-Belge", "2025-08-15", 3, "circuit-franco-belge"),
    RaceInfo("ADAC Cyclassics Hamburg", "2025-08-17", 2, "cyclassics-hamburg"),
    RaceInfo("Bretagne Classic", "2025-08-31", 2, "bretagne-classic"),
    RaceInfo("GP Industria & Artigianato", "2025-09-07", 3, "gp-industria-e-artigianato-di-larciano"),
    RaceInfo("Coppa Sabatini", "2025-09-11", 3, "coppa-sabatini"),
    RaceInfo("Grand Prix Cycliste de Quebec", "2025-09-12", 2, "gp-quebec"),
    RaceInfo("Grand Prix Cycliste de Montreal", "2025-09-14", 2, "gp-montreal"),
    RaceInfo("Grand Prix de Wallonie", "2025-09-17", 3, "gp-de-wallonie"),
    RaceInfo("SUPER 8 Classic", "2025-09-20", 3, "super-8-classic"),
    RaceInfo("Worlds Elite Road Race", "2025-09-28", 1, "world-championship"),
    RaceInfo("Sparkassen Munsterland Giro", "2025-10-03", 3, "sparkassen-muensterland-giro"),
    RaceInfo("Giro dell'Emilia", "2025-10-04", 3, "giro-dell-emilia"),
    RaceInfo("Coppa Bernocchi", "2025-10-06", 3, "coppa-bernocchi"),
    RaceInfo("Tre Valli Varesine", "2025-10-07", 3, "tre-valli-varesine"),
    RaceInfo("Gran Piemonte", "2025-10-09", 3, "gran-piemonte"),
    RaceInfo("Il Lombardia", "2025-10-11", 1, "il-lombardia"),
    RaceInfo("Paris-Tours", "2025-10-12", 3, "paris-tours"),
    RaceInfo("Giro del Veneto", "2025-10-15", 3, "giro-del-veneto"),
    RaceInfo("Veneto Classic", "2025-10-19", 3, "veneto-classic"),
)

_SCHEDULES = {2025: SUPERCLASICO_RACES_2025}


def find_race(name: str, year: int = 2025) -> Optional[RaceInfo]:
    """Find a race by case-insensitive partial name match.

    Returns the first matching RaceInfo, or None.

    Raises:
        ValueError: If no schedule exists for the year.
    """
    if year not in _SCHEDULES:
        raise ValueError(f"Race schedule data only available for {sorted(_SCHEDULES)} (requested {year})")
    needle = name.strip().lower()
    if not needle:
        return None
    for race in _SCHEDULES[year]:
        if needle in race.name.lower() or needle == race.history_slug:
            return race
    return None


def races_in_category(category: int, year: int = 2025) -> Sequence[RaceInfo]:
    """All scheduled races of a scoring category."""
    if year not in _SCHEDULES:
        raise ValueError(f"Race schedule data only available for {sorted(_SCHEDULES)} (requested {year})")
    return [race for race in _SCHEDULES[year] if race.category == category]
