"""Tests for derived stats: formula verification with known inputs."""

import pytest

from coc_creator.models.catalog import RulebookCatalog
from coc_creator.models.character import MissingCharacteristicsError
from coc_creator.models.derived_stats import (
    age_decade_penalty,
    build_and_damage_bonus,
    compute_derived_stats,
    movement_rate,
)


@pytest.fixture
def table():
    return RulebookCatalog.defaults().build_table


def _chars(**overrides: int) -> dict[str, int]:
    base = {
        "FUE": 50, "CON": 60, "TAM": 65, "DES": 55, "APA": 40,
        "INT": 70, "POD": 45, "EDU": 80, "SUERTE": 35,
    }
    base.update(overrides)
    return base


# --- Basic pools ---

def test_sanity_magic_hit_points():
    stats = compute_derived_stats(_chars(), age=25)
    assert stats.cor == 45
    assert stats.pm == 9
    assert stats.pv == 12


def test_pv_floors():
    """(CON 55 + TAM 59) / 10 = 11.4 -> 11."""
    assert compute_derived_stats(_chars(CON=55, TAM=59), age=25).pv == 11


def test_thresholds():
    stats = compute_derived_stats(_chars(), age=25)
    assert stats.hard["EDU"] == 40
    assert stats.extreme["EDU"] == 16
    assert stats.hard["SUERTE"] == 17
    assert stats.extreme["SUERTE"] == 7


def test_requires_every_characteristic():
    with pytest.raises(MissingCharacteristicsError, match="POD"):
        chars = _chars()
        del chars["POD"]
        compute_derived_stats(chars, age=25)


# --- Movement ---

def test_mov_both_below_size():
    assert movement_rate(strength=40, dexterity=40, size=60, age=25) == 7


def test_mov_both_above_size():
    assert movement_rate(strength=70, dexterity=70, size=60, age=25) == 9


def test_mov_mixed():
    assert movement_rate(strength=70, dexterity=40, size=60, age=25) == 8


def test_mov_equal_counts_as_mixed():
    assert movement_rate(strength=60, dexterity=60, size=60, age=25) == 8


@pytest.mark.parametrize("age,penalty", [
    (39, 0), (40, 1), (49, 1), (50, 2), (60, 3), (70, 4), (80, 5), (89, 5),
])
def test_age_decade_penalty(age, penalty):
    assert age_decade_penalty(age) == penalty


def test_mov_with_age():
    assert movement_rate(strength=70, dexterity=70, size=60, age=72) == 5


# --- Build & damage bonus ---

@pytest.mark.parametrize("total,expected", [
    (2, (-2, "-2")),
    (64, (-2, "-2")),
    (65, (-1, "-1")),
    (100, (0, "0")),
    (125, (1, "+1D4")),
    (170, (2, "+1D6")),
    (205, (3, "+2D6")),
    (524, (6, "+5D6")),
])
def test_build_table(table, total, expected):
    assert build_and_damage_bonus(total, table) == expected


@pytest.mark.parametrize("total,expected", [
    (525, (7, "+6D6")),
    (604, (7, "+6D6")),
    (605, (8, "+7D6")),
])
def test_build_above_table(table, total, expected):
    assert build_and_damage_bonus(total, table) == expected


def test_build_below_table(table):
    assert build_and_damage_bonus(1, table) == (-2, "-2")


def test_compute_uses_str_plus_siz():
    stats = compute_derived_stats(_chars(FUE=80, TAM=90), age=25)
    assert (stats.build, stats.damage_bonus) == (2, "+1D6")
