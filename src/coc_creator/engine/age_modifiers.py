"""Age modifiers: characteristic penalties, second Luck roll, EDU checks.

Youth (15-19): EDU -5, a 5-point FUE/TAM split, and Luck rolled twice
keeping the best. From 40 the player splits a decade-dependent total across
FUE/CON/DES and loses a fixed amount of APA. From 20 on, EDU gets one to
four improvement checks.

The player's split is used only when it adds up to the required total;
otherwise the even default split applies. The stored allocation is never
rewritten here, validation reports the mismatch instead.

Every adjustment appends a human-readable step (Spanish, as printed on the
sheet audit trail). Step text is part of the public output.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from coc_creator.engine.rules_config import RulesConfig
from coc_creator.logging_config import get_logger
from coc_creator.models.catalog import RulebookCatalog
from coc_creator.models.character import (
    AgePenaltyAllocation,
    Characteristics,
    clamp_penalty,
    require_characteristics,
)
from coc_creator.models.constants import (
    APPEARANCE_PENALTY_BY_AGE,
    CHARACTERISTIC_KEYS,
    EDU_CHECK_DIE,
    EDU_IMPROVEMENT_DIE,
    EDU_IMPROVEMENT_ROLLS_BY_AGE,
    MATURE_PENALTY_TOTAL_BY_AGE,
    YOUTH_EDU_PENALTY,
    YOUTH_MAX_AGE,
    YOUTH_MIN_AGE,
    lookup_age_table,
)
from coc_creator.models.derived_stats import age_decade_penalty
from coc_creator.parser.dice_formula import DiceFormula, RollDetail


logger = get_logger(__name__)

_EDU_CHECK = DiceFormula.parse(EDU_CHECK_DIE)
_EDU_IMPROVEMENT = DiceFormula.parse(EDU_IMPROVEMENT_DIE)
_EDU_CAP = 99
_FLOOR = 1


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EduImprovementCheck:
    """One EDU improvement check: 1D100 over current EDU earns 1D10."""

    index: int          # 1-based
    edu_before: int
    d100: int
    improvement: int    # 0 when the check failed
    edu_after: int

    @property
    def improved(self) -> bool:
        return self.improvement > 0

    def describe(self) -> str:
        if self.improved:
            return (
                f"Mejora EDU {self.index}: 1D100={self.d100} > {self.edu_before}, "
                f"+1D10={self.improvement} => {self.edu_after}"
            )
        return f"Mejora EDU {self.index}: 1D100={self.d100} <= {self.edu_before}, sin mejora"


@dataclass(frozen=True, slots=True)
class CharacteristicRoll:
    """A single characteristic rolled and adjusted for age."""

    key: str
    base: RollDetail
    final_value: int
    steps: list[str] = field(default_factory=list)
    edu_checks: tuple[EduImprovementCheck, ...] = ()


@dataclass(frozen=True, slots=True)
class AgeModifierResult:
    """A full characteristic set after age modifiers."""

    characteristics: Characteristics
    steps: list[str] = field(default_factory=list)
    edu_checks: tuple[EduImprovementCheck, ...] = ()


# ---------------------------------------------------------------------------
# Age tables
# ---------------------------------------------------------------------------


def is_youth(age: int) -> bool:
    return YOUTH_MIN_AGE <= age <= YOUTH_MAX_AGE


def mature_penalty_total(age: int) -> int:
    """FUE/CON/DES points the player must split: 0 under 40, 80 at 80+."""
    return lookup_age_table(MATURE_PENALTY_TOTAL_BY_AGE, age)


def appearance_penalty(age: int) -> int:
    return lookup_age_table(APPEARANCE_PENALTY_BY_AGE, age)


def edu_improvement_rolls(age: int) -> int:
    return lookup_age_table(EDU_IMPROVEMENT_ROLLS_BY_AGE, age)


def age_guidance(age: int) -> list[str]:
    """What the rulebook asks the player to do for *age*, one line per rule."""
    if is_youth(age):
        return [
            f"Resta {YOUTH_EDU_PENALTY} puntos entre FUE y TAM.",
            f"EDU comienza con {YOUTH_EDU_PENALTY} puntos menos.",
            "SUERTE se tira dos veces y eliges el resultado mayor.",
            "No hay tiradas de mejora de EDU por edad.",
        ]

    lines: list[str] = []
    target = mature_penalty_total(age)
    if target > 0:
        lines.append(f"Resta {target} puntos entre FUE/CON/DES.")
        lines.append(f"Reduce APA en {appearance_penalty(age)}.")
    rolls = edu_improvement_rolls(age)
    if rolls == 1:
        lines.append("Haz 1 tirada de mejora de EDU.")
    elif rolls > 1:
        lines.append(f"Haz {rolls} tiradas de mejora de EDU.")
    mov_penalty = age_decade_penalty(age)
    if mov_penalty > 0:
        lines.append(f"MOV se reduce en {mov_penalty}.")
    return lines


def default_allocation(age: int, youth_total: int = 5) -> AgePenaltyAllocation:
    """Even split for *age*: FUE gets the smaller half, DES the remainder."""
    youth_fue = youth_total // 2
    mature = mature_penalty_total(age)
    return AgePenaltyAllocation(
        youth_fue=youth_fue,
        youth_tam=youth_total - youth_fue,
        mature_fue=mature // 3,
        mature_con=mature // 3,
        mature_des=mature - 2 * (mature // 3),
    )


def effective_penalties(
    age: int,
    allocation: AgePenaltyAllocation | None = None,
    config: RulesConfig | None = None,
) -> dict[str, int]:
    """Penalty per characteristic actually applied at *age*.

    The player's split is honoured only when it adds up; otherwise the
    default split for the age is used.
    """
    config = config or RulesConfig()
    fallback = default_allocation(age, config.youth_penalty_total)
    allocation = allocation or fallback
    penalties: dict[str, int] = {}

    if is_youth(age):
        if allocation.youth_total == config.youth_penalty_total:
            fue, tam = clamp_penalty(allocation.youth_fue), clamp_penalty(allocation.youth_tam)
        else:
            fue, tam = fallback.youth_fue, fallback.youth_tam
        penalties["EDU"] = YOUTH_EDU_PENALTY
        penalties["FUE"] = fue
        penalties["TAM"] = tam

    target = mature_penalty_total(age)
    if target > 0:
        if allocation.mature_total == target:
            split = allocation
        else:
            split = fallback
        penalties["FUE"] = clamp_penalty(split.mature_fue)
        penalties["CON"] = clamp_penalty(split.mature_con)
        penalties["DES"] = clamp_penalty(split.mature_des)
        penalties["APA"] = appearance_penalty(age)

    return penalties


# ---------------------------------------------------------------------------
# Rolling
# ---------------------------------------------------------------------------


def improve_education(
    edu: int,
    age: int,
    rng: random.Random | None = None,
) -> list[EduImprovementCheck]:
    """Run the EDU improvement checks for *age*, starting from *edu*."""
    checks: list[EduImprovementCheck] = []
    current = edu
    for index in range(1, edu_improvement_rolls(age) + 1):
        d100 = _EDU_CHECK.roll(rng).total
        improvement = 0
        if d100 > current:
            improvement = _EDU_IMPROVEMENT.roll(rng).total
        after = min(_EDU_CAP, current + improvement)
        checks.append(EduImprovementCheck(
            index=index,
            edu_before=current,
            d100=d100,
            improvement=improvement,
            edu_after=after,
        ))
        current = after
    return checks


def _apply_penalty(value: int, penalty: int) -> int:
    return max(_FLOOR, value - penalty)


def _penalty_label(key: str, age: int) -> str:
    if is_youth(age):
        return f"Edad {YOUTH_MIN_AGE}-{YOUTH_MAX_AGE} {key}"
    return f"Edad {age} {key}"


def _best_of_two_luck(
    value: int,
    catalog: RulebookCatalog,
    rng: random.Random | None,
    steps: list[str],
) -> int:
    second = catalog.generation_formula("SUERTE").roll(rng)
    best = max(value, second.total)
    steps.append(f"Edad {YOUTH_MIN_AGE}-{YOUTH_MAX_AGE} SUERTE 2a: {second.describe(with_formula=False)}")
    steps.append(f"Mejor de dos SUERTE: max({value}, {second.total}) => {best}")
    return best


def _adjust(
    key: str,
    value: int,
    age: int,
    penalties: dict[str, int],
    catalog: RulebookCatalog,
    rng: random.Random | None,
    steps: list[str],
) -> tuple[int, tuple[EduImprovementCheck, ...]]:
    """Apply every age rule that touches *key* to *value*."""
    if key in penalties:
        penalty = penalties[key]
        value = _apply_penalty(value, penalty)
        steps.append(f"{_penalty_label(key, age)}: -{penalty} => {value}")

    if key == "SUERTE" and is_youth(age):
        value = _best_of_two_luck(value, catalog, rng, steps)

    checks: tuple[EduImprovementCheck, ...] = ()
    if key == "EDU":
        checks = tuple(improve_education(value, age, rng))
        steps.extend(check.describe() for check in checks)
        if checks:
            value = checks[-1].edu_after

    return value, checks


def roll_characteristic_with_age_modifiers(
    key: str,
    age: int,
    allocation: AgePenaltyAllocation | None = None,
    *,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
    rng: random.Random | None = None,
) -> CharacteristicRoll:
    """Roll *key* with the catalog formula and apply every age rule to it.

    The first step is always the base roll breakdown.
    """
    catalog = catalog or RulebookCatalog.defaults()
    base = catalog.generation_formula(key).roll(rng)
    steps = [base.describe()]
    penalties = effective_penalties(age, allocation, config)

    final_value, checks = _adjust(key, base.total, age, penalties, catalog, rng, steps)
    logger.debug(
        "Rolled characteristic",
        key=key,
        age=age,
        base=base.total,
        final=final_value,
    )
    return CharacteristicRoll(
        key=key,
        base=base,
        final_value=final_value,
        steps=steps,
        edu_checks=checks,
    )


def roll_characteristics(
    catalog: RulebookCatalog | None = None,
    rng: random.Random | None = None,
) -> Characteristics:
    """One fresh roll per characteristic, no age rules applied."""
    catalog = catalog or RulebookCatalog.defaults()
    return {
        key: catalog.generation_formula(key).roll(rng).total
        for key in CHARACTERISTIC_KEYS
    }


def apply_age_modifiers(
    characteristics: Characteristics,
    age: int,
    allocation: AgePenaltyAllocation | None = None,
    *,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
    rng: random.Random | None = None,
) -> AgeModifierResult:
    """Apply age rules to an already rolled, complete characteristic set.

    Youth Luck still gets its second roll, so this consumes dice.
    """
    require_characteristics(characteristics)
    catalog = catalog or RulebookCatalog.defaults()
    penalties = effective_penalties(age, allocation, config)

    result = dict(characteristics)
    steps: list[str] = []
    edu_checks: tuple[EduImprovementCheck, ...] = ()
    for key in CHARACTERISTIC_KEYS:
        value, checks = _adjust(key, result[key], age, penalties, catalog, rng, steps)
        result[key] = value
        if checks:
            edu_checks = checks

    return AgeModifierResult(characteristics=result, steps=steps, edu_checks=edu_checks)
