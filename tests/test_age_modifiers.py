"""Tests for age modifiers: scripted dice so every step is exact."""

import random

import pytest

from coc_creator.engine.age_modifiers import (
    age_guidance,
    appearance_penalty,
    apply_age_modifiers,
    default_allocation,
    edu_improvement_rolls,
    effective_penalties,
    improve_education,
    is_youth,
    mature_penalty_total,
    roll_characteristic_with_age_modifiers,
    roll_characteristics,
)
from coc_creator.engine.rules_config import RulesConfig
from coc_creator.models.character import AgePenaltyAllocation, MissingCharacteristicsError
from coc_creator.models.constants import CHARACTERISTIC_KEYS


class ScriptedRng:
    """Stand-in for random.Random that returns queued values from randint()."""

    def __init__(self, values: list[int]) -> None:
        self._values = list(values)

    def randint(self, low: int, high: int) -> int:
        value = self._values.pop(0)
        assert low <= value <= high, f"scripted {value} outside [{low}, {high}]"
        return value

    @property
    def exhausted(self) -> bool:
        return not self._values


def _all(value: int = 50) -> dict[str, int]:
    return {key: value for key in CHARACTERISTIC_KEYS}


def _roll(key: str, age: int, dice: list[int], allocation=None):
    rng = ScriptedRng(dice)
    result = roll_characteristic_with_age_modifiers(key, age, allocation, rng=rng)
    assert rng.exhausted, "not every scripted die was consumed"
    return result


# ===========================================================================
# Tables
# ===========================================================================


class TestTables:
    @pytest.mark.parametrize("age,expected", [
        (15, True), (19, True), (14, False), (20, False),
    ])
    def test_is_youth(self, age, expected):
        assert is_youth(age) is expected

    @pytest.mark.parametrize("age,total", [
        (25, 0), (39, 0), (40, 5), (49, 5), (50, 10), (60, 20), (70, 40), (80, 80), (89, 80),
    ])
    def test_mature_total(self, age, total):
        assert mature_penalty_total(age) == total

    @pytest.mark.parametrize("age,penalty", [
        (39, 0), (40, 5), (50, 10), (60, 15), (70, 20), (85, 25),
    ])
    def test_appearance(self, age, penalty):
        assert appearance_penalty(age) == penalty

    @pytest.mark.parametrize("age,rolls", [
        (15, 0), (19, 0), (20, 1), (39, 1), (40, 2), (50, 3), (59, 3), (60, 4), (89, 4),
    ])
    def test_edu_rolls(self, age, rolls):
        assert edu_improvement_rolls(age) == rolls


class TestGuidance:
    def test_youth(self):
        lines = age_guidance(17)
        assert lines[0] == "Resta 5 puntos entre FUE y TAM."
        assert "SUERTE se tira dos veces y eliges el resultado mayor." in lines

    def test_young_adult(self):
        assert age_guidance(25) == ["Haz 1 tirada de mejora de EDU."]

    def test_mature(self):
        assert age_guidance(45) == [
            "Resta 5 puntos entre FUE/CON/DES.",
            "Reduce APA en 5.",
            "Haz 2 tiradas de mejora de EDU.",
            "MOV se reduce en 1.",
        ]


# ===========================================================================
# Penalty split
# ===========================================================================


class TestPenalties:
    def test_default_allocation_40(self):
        alloc = default_allocation(40)
        assert (alloc.mature_fue, alloc.mature_con, alloc.mature_des) == (1, 1, 3)
        assert (alloc.youth_fue, alloc.youth_tam) == (2, 3)

    def test_default_allocation_80_plus(self):
        alloc = default_allocation(85)
        assert (alloc.mature_fue, alloc.mature_con, alloc.mature_des) == (26, 26, 28)
        assert alloc.mature_total == 80

    def test_no_penalties_in_twenties(self):
        assert effective_penalties(30) == {}

    def test_youth_default(self):
        assert effective_penalties(17) == {"EDU": 5, "FUE": 2, "TAM": 3}

    def test_youth_custom_split(self):
        alloc = AgePenaltyAllocation(youth_fue=5, youth_tam=0)
        assert effective_penalties(18, alloc) == {"EDU": 5, "FUE": 5, "TAM": 0}

    def test_youth_wrong_sum_falls_back(self):
        alloc = AgePenaltyAllocation(youth_fue=4, youth_tam=4)
        assert effective_penalties(18, alloc)["FUE"] == 2
        assert effective_penalties(18, alloc)["TAM"] == 3

    def test_fractional_values_are_floored(self):
        alloc = AgePenaltyAllocation(youth_fue=2.7, youth_tam=3)
        assert effective_penalties(16, alloc) == {"EDU": 5, "FUE": 2, "TAM": 3}

    def test_negative_values_clamp_to_zero(self):
        alloc = AgePenaltyAllocation(youth_fue=-1, youth_tam=5)
        assert effective_penalties(16, alloc)["FUE"] == 0

    def test_mature_custom_split(self):
        alloc = AgePenaltyAllocation(mature_fue=5, mature_con=0, mature_des=0)
        assert effective_penalties(42, alloc) == {"FUE": 5, "CON": 0, "DES": 0, "APA": 5}

    def test_mature_wrong_sum_falls_back(self):
        alloc = AgePenaltyAllocation(mature_fue=3, mature_con=3, mature_des=3)
        penalties = effective_penalties(55, alloc)
        assert (penalties["FUE"], penalties["CON"], penalties["DES"]) == (3, 3, 4)

    def test_stored_allocation_is_not_rewritten(self):
        alloc = AgePenaltyAllocation(mature_fue=3, mature_con=3, mature_des=3)
        effective_penalties(55, alloc)
        assert alloc.mature_total == 9

    def test_custom_youth_total(self):
        config = RulesConfig(youth_penalty_total=6)
        alloc = AgePenaltyAllocation(youth_fue=3, youth_tam=3)
        assert effective_penalties(16, alloc, config)["FUE"] == 3


# ===========================================================================
# Single characteristic
# ===========================================================================


class TestRollWithAge:
    def test_plain_roll_at_30(self):
        result = _roll("FUE", 30, [4, 2, 6])
        assert result.final_value == 60
        assert result.steps == ["3D6x5: [4, 2, 6] = 12 x5 => 60"]
        assert result.base.total == 60

    def test_youth_edu(self):
        result = _roll("EDU", 17, [3, 5])
        assert result.final_value == 65
        assert result.steps == [
            "(2D6+6)x5: [3, 5] + 6 = 14 x5 => 70",
            "Edad 15-19 EDU: -5 => 65",
        ]
        assert result.edu_checks == ()

    def test_youth_luck_best_of_two(self):
        result = _roll("SUERTE", 17, [1, 1, 1, 6, 6, 6])
        assert result.final_value == 90
        assert result.steps == [
            "3D6x5: [1, 1, 1] = 3 x5 => 15",
            "Edad 15-19 SUERTE 2a: [6, 6, 6] = 18 x5 => 90",
            "Mejor de dos SUERTE: max(15, 90) => 90",
        ]

    def test_youth_luck_keeps_first_when_higher(self):
        result = _roll("SUERTE", 19, [6, 6, 6, 1, 1, 1])
        assert result.final_value == 90

    def test_youth_strength_custom_split(self):
        alloc = AgePenaltyAllocation(youth_fue=4, youth_tam=1)
        result = _roll("FUE", 17, [1, 1, 1], alloc)
        assert result.final_value == 11
        assert result.steps[-1] == "Edad 15-19 FUE: -4 => 11"

    def test_mature_edu_checks(self):
        result = _roll("EDU", 45, [1, 1, 75, 6, 20])
        assert result.final_value == 46
        assert result.steps[1:] == [
            "Mejora EDU 1: 1D100=75 > 40, +1D10=6 => 46",
            "Mejora EDU 2: 1D100=20 <= 46, sin mejora",
        ]
        assert [c.improved for c in result.edu_checks] == [True, False]

    def test_edu_capped_at_99(self):
        result = _roll("EDU", 65, [6, 6, 95, 10, 100, 5, 1, 1])
        assert result.final_value == 99
        assert len(result.edu_checks) == 4
        assert all(c.edu_after <= 99 for c in result.edu_checks)

    def test_appearance_loss(self):
        result = _roll("APA", 55, [2, 2, 2])
        assert result.final_value == 20
        assert result.steps[-1] == "Edad 55 APA: -10 => 20"

    def test_penalty_floors_at_one(self):
        result = _roll("DES", 85, [1, 1, 1])
        assert result.final_value == 1
        assert result.steps[-1] == "Edad 85 DES: -28 => 1"

    def test_mature_custom_split_used(self):
        alloc = AgePenaltyAllocation(mature_fue=0, mature_con=0, mature_des=5)
        result = _roll("DES", 40, [3, 3, 3], alloc)
        assert result.final_value == 40

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown characteristic"):
            roll_characteristic_with_age_modifiers("XYZ", 30, rng=ScriptedRng([]))


# ===========================================================================
# Full set
# ===========================================================================


class TestFullSet:
    def test_roll_characteristics_covers_all_keys(self):
        values = roll_characteristics(rng=random.Random(3))
        assert list(values) == list(CHARACTERISTIC_KEYS)
        assert all(15 <= v <= 90 for v in values.values())

    def test_apply_young_adult(self):
        rng = ScriptedRng([10])
        result = apply_age_modifiers(_all(60), 25, rng=rng)
        assert result.characteristics == _all(60)
        assert result.steps == ["Mejora EDU 1: 1D100=10 <= 60, sin mejora"]
        assert len(result.edu_checks) == 1

    def test_apply_youth(self):
        rng = ScriptedRng([3, 3, 3])
        result = apply_age_modifiers(_all(50), 17, rng=rng)
        chars = result.characteristics
        assert (chars["FUE"], chars["TAM"], chars["EDU"], chars["SUERTE"]) == (48, 47, 45, 50)
        assert chars["CON"] == 50
        assert "Mejor de dos SUERTE: max(50, 45) => 50" in result.steps

    def test_apply_does_not_touch_input(self):
        original = _all(50)
        apply_age_modifiers(original, 45, rng=ScriptedRng([1, 1]))
        assert original == _all(50)

    def test_apply_80_plus(self):
        result = apply_age_modifiers(_all(30), 82, rng=ScriptedRng([1, 1, 1, 1]))
        chars = result.characteristics
        assert chars["FUE"] == 4
        assert chars["CON"] == 4
        assert chars["DES"] == 2
        assert chars["APA"] == 5
        assert len(result.edu_checks) == 4

    def test_apply_requires_all(self):
        with pytest.raises(MissingCharacteristicsError):
            apply_age_modifiers({"FUE": 50}, 30)

    def test_improve_education_none_for_youth(self):
        assert improve_education(60, 18, ScriptedRng([])) == []
