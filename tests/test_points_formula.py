"""Tests for occupation point-budget formulas."""

import pytest

from coc_creator.models.catalog import RulebookCatalog
from coc_creator.parser.dice_formula import FormulaError
from coc_creator.parser.points_formula import (
    FormulaChoiceGroup,
    evaluate_points_formula,
    extract_choice_groups,
    first_option_choices,
    format_option,
    is_choice_resolved,
    normalize_formula,
    pick_highest_choices,
    split_top_level,
    strip_outer_parentheses,
)


def _chars(**overrides: int) -> dict[str, int]:
    base = {
        "FUE": 50, "CON": 40, "TAM": 60, "DES": 70, "APA": 45,
        "INT": 65, "POD": 55, "EDU": 60, "SUERTE": 50,
    }
    base.update(overrides)
    return base


# ===========================================================================
# Tokenizer
# ===========================================================================


class TestTokenizer:
    def test_normalize(self):
        assert normalize_formula("EDU x2 + (DES x2 o FUE x2)") == "EDUX2+(DESX2OFUEX2)"

    def test_format_option(self):
        assert format_option("DESX2") == "DES x 2"

    def test_strip_wrapping_parentheses(self):
        assert strip_outer_parentheses("((EDUX2))") == "EDUX2"

    def test_keep_parentheses_that_dont_wrap(self):
        assert strip_outer_parentheses("(FUEX2)+(DESX2)") == "(FUEX2)+(DESX2)"

    def test_split_plus_ignores_nested(self):
        assert split_top_level("EDUX2+(DESX2+FUEX2)", "+") == ["EDUX2", "(DESX2+FUEX2)"]

    def test_split_o_at_boundary(self):
        assert split_top_level("DESX2OFUEX2", "O") == ["DESX2", "FUEX2"]

    def test_o_inside_name_is_not_a_split(self):
        assert split_top_level("CONX2", "O") == ["CONX2"]
        assert split_top_level("PODX2", "O") == ["PODX2"]

    def test_o_before_parenthesis(self):
        assert split_top_level("EDUO(FUE+TAM)", "O") == ["EDU", "(FUE+TAM)"]

    def test_o_after_parenthesis(self):
        assert split_top_level("(FUE+TAM)OEDUX2", "O") == ["(FUE+TAM)", "EDUX2"]


# ===========================================================================
# Evaluation
# ===========================================================================


class TestEvaluate:
    def test_single_multiplier(self):
        assert evaluate_points_formula("EDU x2", _chars(EDU=60)) == 120

    def test_edu_x4(self):
        assert evaluate_points_formula("EDU x4", _chars(EDU=70)) == 280

    def test_sum(self):
        assert evaluate_points_formula("EDU x2 + APA x2", _chars(EDU=60, APA=45)) == 210

    def test_parenthesised_sum(self):
        assert evaluate_points_formula("(FUE + CON)", _chars(FUE=50, CON=40)) == 90

    def test_con_is_not_split_on_its_o(self):
        assert evaluate_points_formula("CON x2", _chars(CON=40)) == 80

    def test_branch_defaults_to_first_option(self):
        points = evaluate_points_formula("EDU x2 + (DES x2 o FUE x2)", _chars())
        assert points == 120 + 140

    def test_branch_uses_stored_choice(self):
        points = evaluate_points_formula(
            "EDU x2 + (DES x2 o FUE x2)", _chars(), {"choice_0": "FUEX2"}
        )
        assert points == 120 + 100

    def test_stored_choice_is_normalised(self):
        points = evaluate_points_formula(
            "EDU x2 + (DES x2 o FUE x2)", _chars(), {"choice_0": "fue x 2"}
        )
        assert points == 220

    def test_unknown_stored_choice_falls_back(self):
        points = evaluate_points_formula(
            "EDU x2 + (DES x2 o FUE x2)", _chars(), {"choice_0": "INTX2"}
        )
        assert points == 260

    def test_three_way_branch(self):
        formula = "EDU x2 + (APA x2 o DES x2 o FUE x2)"
        assert evaluate_points_formula(formula, _chars(), {"choice_0": "DESX2"}) == 260
        assert evaluate_points_formula(formula, _chars(), {"choice_0": "APAX2"}) == 210

    def test_missing_characteristic_counts_zero(self):
        assert evaluate_points_formula("EDU x2 + DES x2", {"EDU": 50}) == 100

    @pytest.mark.parametrize("junk", ["", "???", "XYZ x2", "EDU x", "+", "(EDU x2"])
    def test_garbage_never_raises(self, junk):
        assert isinstance(evaluate_points_formula(junk, _chars()), int)

    def test_unknown_token_is_zero(self):
        assert evaluate_points_formula("FOO x3", _chars()) == 0


# ===========================================================================
# Choice groups
# ===========================================================================


class TestChoiceGroups:
    def test_extract_single(self):
        groups = extract_choice_groups("EDU x2 + (DES x2 o FUE x2)")
        assert groups == [FormulaChoiceGroup(key="choice_0", options=("DESX2", "FUEX2"))]

    def test_extract_none(self):
        assert extract_choice_groups("EDU x4") == []
        assert extract_choice_groups("(FUE + CON)") == []

    def test_extract_keys_follow_order(self):
        groups = extract_choice_groups("(EDU x2 o INT x2) + (DES x2 o FUE x2)")
        assert [g.key for g in groups] == ["choice_0", "choice_1"]
        assert groups[1].options == ("DESX2", "FUEX2")

    def test_second_group_uses_its_own_choice(self):
        formula = "(EDU x2 o INT x2) + (DES x2 o FUE x2)"
        points = evaluate_points_formula(
            formula, _chars(), {"choice_0": "INTX2", "choice_1": "FUEX2"}
        )
        assert points == 130 + 100

    def test_resolved(self):
        group = extract_choice_groups("EDU x2 + (DES x2 o FUE x2)")[0]
        assert is_choice_resolved(group, {"choice_0": "DESX2"})
        assert is_choice_resolved(group, {"choice_0": "des x2"})
        assert not is_choice_resolved(group, {})
        assert not is_choice_resolved(group, {"choice_0": "POD x2"})

    def test_first_option_choices(self):
        assert first_option_choices("EDU x2 + (POD x2 o DES x2)") == {"choice_0": "PODX2"}
        assert first_option_choices("EDU x4") == {}


# ===========================================================================
# Pick highest
# ===========================================================================


class TestPickHighest:
    def test_picks_best_branch(self):
        choices = pick_highest_choices("EDU x2 + (DES x2 o FUE x2)", _chars(DES=40, FUE=80))
        assert choices == {"choice_0": "FUEX2"}

    def test_tie_keeps_first(self):
        choices = pick_highest_choices("EDU x2 + (DES x2 o FUE x2)", _chars(DES=60, FUE=60))
        assert choices == {"choice_0": "DESX2"}

    def test_no_groups(self):
        assert pick_highest_choices("EDU x4", _chars()) == {}

    def test_two_groups(self):
        formula = "(EDU x2 o INT x2) + (DES x2 o FUE x2)"
        choices = pick_highest_choices(formula, _chars(EDU=40, INT=80, DES=30, FUE=90))
        assert choices == {"choice_0": "INTX2", "choice_1": "FUEX2"}

    def test_combination_limit(self):
        formula = "(EDU x2 o INT x2) + (DES x2 o FUE x2)"
        with pytest.raises(FormulaError, match="combinations"):
            pick_highest_choices(formula, _chars(), max_combinations=3)


# ===========================================================================
# Catalog formulas
# ===========================================================================


_CATALOG = RulebookCatalog.defaults()


@pytest.mark.parametrize("occupation", _CATALOG.occupations, ids=lambda occ: occ.name)
def test_every_catalog_formula_gives_positive_budget(occupation):
    formula = occupation.points_formula
    points = evaluate_points_formula(formula, _chars(), first_option_choices(formula))
    assert points > 0
