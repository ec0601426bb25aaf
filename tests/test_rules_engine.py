"""Tests for the RulesEngine facade."""

import random

import pytest

from coc_creator.engine import RulesConfig, RulesEngine
from coc_creator.engine.draft_ops import new_draft
from coc_creator.engine.validation import has_errors
from coc_creator.models.character import OccupationSelection
from coc_creator.models.constants import CHARACTERISTIC_KEYS, WizardStage
from coc_creator.parser.dice_formula import FormulaError
from coc_creator.parser.points_formula import FormulaChoiceGroup


PI = "Investigador privado"


def _engine(seed: int = 1, config: RulesConfig | None = None) -> RulesEngine:
    return RulesEngine.defaults(config=config, rng=random.Random(seed))


def _chars(**overrides: int) -> dict[str, int]:
    base = {
        "FUE": 50, "CON": 50, "TAM": 60, "DES": 65, "APA": 45,
        "INT": 70, "POD": 55, "EDU": 75, "SUERTE": 40,
    }
    base.update(overrides)
    return base


class TestConstruction:
    def test_defaults(self):
        engine = RulesEngine.defaults()
        assert engine.config == RulesConfig()
        assert PI in engine.catalog.occupation_names()

    def test_config_validation(self):
        with pytest.raises(ValueError, match="creation_cap_severity"):
            RulesConfig(creation_cap_severity="fatal")
        with pytest.raises(ValueError, match="min_age"):
            RulesConfig(min_age=50, max_age=40)


class TestRolling:
    def test_seeded_engines_agree(self):
        assert _engine(3).roll_characteristics() == _engine(3).roll_characteristics()

    def test_roll_all_keys(self):
        assert list(_engine().roll_characteristics()) == list(CHARACTERISTIC_KEYS)

    def test_roll_with_age(self):
        roll = _engine().roll_characteristic_with_age_modifiers("EDU", 65)
        assert len(roll.edu_checks) == 4
        assert roll.steps[0].startswith("(2D6+6)x5: [")
        assert roll.final_value <= 99

    def test_derived(self):
        stats = _engine().compute_derived_stats(_chars(), 45)
        assert stats.mov == 7


class TestFormulas:
    def test_evaluate(self):
        engine = _engine()
        assert engine.evaluate_occupation_points_formula("EDU x2", _chars(EDU=60)) == 120
        assert engine.evaluate_occupation_points_formula("(FUE + CON)", _chars(FUE=50, CON=40)) == 90

    def test_extract(self):
        groups = _engine().extract_occupation_formula_choice_groups("EDU x2 + (DES x2 o FUE x2)")
        assert groups == [FormulaChoiceGroup("choice_0", ("DESX2", "FUEX2"))]

    def test_pick_highest_respects_limit(self):
        engine = _engine(config=RulesConfig(max_formula_combinations=1))
        with pytest.raises(FormulaError):
            engine.pick_highest_formula_choices("EDU x2 + (DES x2 o FUE x2)", _chars())


class TestDraftFlow:
    def test_no_occupation_budget(self):
        engine = _engine()
        draft = engine.roll_all_characteristics(new_draft())
        occupation, personal = engine.points_budgets(draft)
        assert occupation == 0
        assert personal == draft.characteristics["INT"] * 2

    def test_select_and_budget(self):
        engine = _engine()
        draft = engine.roll_all_characteristics(new_draft())
        draft = engine.select_occupation(draft, PI)
        occupation, _ = engine.points_budgets(draft)
        chars = draft.characteristics
        assert occupation == chars["EDU"] * 2 + chars["DES"] * 2

    def test_unknown_occupation_budget(self):
        engine = _engine()
        draft = engine.roll_all_characteristics(new_draft())
        draft.occupation = OccupationSelection(name="Astronauta")
        assert engine.points_budgets(draft)[0] == 0

    def test_allowed_skills(self):
        engine = _engine()
        selection = OccupationSelection(name=PI)
        assert "Psicologia" in engine.collect_allowed_occupation_skills(selection)
        assert engine.is_allowed_occupation_skill(selection, "Derecho")
        assert not engine.is_allowed_occupation_skill(selection, "Medicina")

    def test_reroll(self):
        engine = _engine()
        draft = engine.roll_all_characteristics(new_draft())
        again = engine.reroll_characteristic(draft, "SUERTE")
        assert again.characteristics["FUE"] == draft.characteristics["FUE"]

    def test_validation_and_blocking_stage(self):
        engine = _engine()
        draft = engine.roll_all_characteristics(new_draft())
        assert not has_errors(engine.validate_step(3, draft))
        assert engine.first_blocking_stage(draft) == WizardStage.OCCUPATION

    def test_finance(self):
        assert _engine().finance_by_credit(95).spending_level == "Rico"
