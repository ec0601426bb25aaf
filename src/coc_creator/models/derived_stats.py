"""Derived statistics calculator driven by the rulebook catalog.

Formula structure is rulebook-defined and hardcoded here; the build /
damage bonus table comes from the catalog (``build_and_damage_bonus``).

  COR     = POD
  PM      = floor(POD / 5)
  PV      = floor((CON + TAM) / 10)
  MOV     = 7 / 8 / 9 by comparing DES and FUE against TAM, minus age penalty
  Build   = table lookup on FUE + TAM
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from coc_creator.models.catalog import BuildBand, RulebookCatalog
from coc_creator.models.character import Characteristics, require_characteristics
from coc_creator.models.constants import (
    CHARACTERISTIC_KEYS,
    MOV_PENALTY_BY_AGE,
    lookup_age_table,
)


# Past the last table row every 80 points (or part) adds one step
_BUILD_OVERFLOW_START = 524
_BUILD_OVERFLOW_STEP = 80
_BUILD_OVERFLOW_BASE = 6
_DAMAGE_OVERFLOW_BASE_DICE = 5

_BASE_MOV = 8


@dataclass(frozen=True, slots=True)
class DerivedStats:
    """Complete computed stat snapshot for a set of characteristics."""

    cor: int
    pm: int
    pv: int
    mov: int
    build: int
    damage_bonus: str

    # Difficulty thresholds per characteristic
    hard: Mapping[str, int] = field(default_factory=dict)
    extreme: Mapping[str, int] = field(default_factory=dict)


def age_decade_penalty(age: int) -> int:
    """MOV lost to age: 1 in the 40s up to 5 at 80+."""
    return lookup_age_table(MOV_PENALTY_BY_AGE, age)


def movement_rate(strength: int, dexterity: int, size: int, age: int) -> int:
    mov = _BASE_MOV
    if dexterity < size and strength < size:
        mov = 7
    elif dexterity > size and strength > size:
        mov = 9
    return mov - age_decade_penalty(age)


def build_and_damage_bonus(
    strength_plus_size: int,
    table: tuple[BuildBand, ...],
) -> tuple[int, str]:
    """Look up (build, damage bonus) for FUE+TAM."""
    for band in table:
        if band.min_sum <= strength_plus_size <= band.max_sum:
            return band.build, band.damage_bonus

    if strength_plus_size > _BUILD_OVERFLOW_START:
        steps = math.ceil((strength_plus_size - _BUILD_OVERFLOW_START) / _BUILD_OVERFLOW_STEP)
        return (
            _BUILD_OVERFLOW_BASE + steps,
            f"+{_DAMAGE_OVERFLOW_BASE_DICE + steps}D6",
        )

    return -2, "-2"


def compute_derived_stats(
    characteristics: Characteristics,
    age: int,
    catalog: RulebookCatalog | None = None,
) -> DerivedStats:
    """Compute every derived stat from a complete characteristic set.

    Raises MissingCharacteristicsError if any of the nine values is absent.
    """
    require_characteristics(characteristics)
    catalog = catalog or RulebookCatalog.defaults()

    fue = characteristics["FUE"]
    tam = characteristics["TAM"]
    pod = characteristics["POD"]

    build, damage_bonus = build_and_damage_bonus(fue + tam, catalog.build_table)

    return DerivedStats(
        cor=pod,
        pm=pod // 5,
        pv=(characteristics["CON"] + tam) // 10,
        mov=movement_rate(fue, characteristics["DES"], tam, age),
        build=build,
        damage_bonus=damage_bonus,
        hard={key: characteristics[key] // 2 for key in CHARACTERISTIC_KEYS},
        extreme={key: characteristics[key] // 5 for key in CHARACTERISTIC_KEYS},
    )
