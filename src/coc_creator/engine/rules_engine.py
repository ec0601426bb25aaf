"""Rules engine: one object bundling the catalog, config and dice source.

The wizard layer talks to the rules through this facade. Every method
delegates to the module-level function of the same name with the engine's
catalog, config and random source filled in; the engine itself holds no
draft state.
"""

from __future__ import annotations

import random

from coc_creator.engine import age_modifiers, draft_ops, occupation, skills, validation
from coc_creator.engine.age_modifiers import CharacteristicRoll
from coc_creator.engine.finalize import CharacterSheet, finalize_character
from coc_creator.engine.rules_config import RulesConfig
from coc_creator.engine.skills import SkillValue
from coc_creator.engine.validation import ValidationIssue
from coc_creator.models.catalog import RulebookCatalog
from coc_creator.models.character import (
    AgePenaltyAllocation,
    CharacterDraft,
    Characteristics,
    OccupationSelection,
    SkillAllocation,
)
from coc_creator.models.constants import WizardStage
from coc_creator.models.derived_stats import DerivedStats, compute_derived_stats
from coc_creator.models.finance import FinanceSnapshot, finance_by_credit
from coc_creator.parser.points_formula import (
    FormulaChoiceGroup,
    evaluate_points_formula,
    extract_choice_groups,
    pick_highest_choices,
)


class RulesEngine:
    """Computes, validates and finalizes investigators against one rulebook.

    Consumes a RulebookCatalog and RulesConfig without modifying either.
    Pass a seeded ``random.Random`` for reproducible rolls.
    """

    __slots__ = ("_catalog", "_config", "_rng")

    def __init__(
        self,
        catalog: RulebookCatalog,
        config: RulesConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config or RulesConfig()
        self._rng = rng

    # --- Factories ---------------------------------------------------------

    @classmethod
    def defaults(
        cls,
        config: RulesConfig | None = None,
        rng: random.Random | None = None,
    ) -> RulesEngine:
        """Engine over the packaged rulebook."""
        return cls(RulebookCatalog.defaults(), config, rng)

    @property
    def catalog(self) -> RulebookCatalog:
        return self._catalog

    @property
    def config(self) -> RulesConfig:
        return self._config

    # --- Rolling -----------------------------------------------------------

    def roll_characteristics(self) -> Characteristics:
        return age_modifiers.roll_characteristics(self._catalog, self._rng)

    def roll_characteristic_with_age_modifiers(
        self,
        key: str,
        age: int,
        allocation: AgePenaltyAllocation | None = None,
    ) -> CharacteristicRoll:
        return age_modifiers.roll_characteristic_with_age_modifiers(
            key,
            age,
            allocation,
            catalog=self._catalog,
            config=self._config,
            rng=self._rng,
        )

    def compute_derived_stats(self, characteristics: Characteristics, age: int) -> DerivedStats:
        return compute_derived_stats(characteristics, age, self._catalog)

    # --- Occupation formulas -----------------------------------------------

    def evaluate_occupation_points_formula(
        self,
        formula: str,
        characteristics: Characteristics,
        formula_choices: dict[str, str] | None = None,
    ) -> int:
        return evaluate_points_formula(formula, characteristics, formula_choices)

    def extract_occupation_formula_choice_groups(self, formula: str) -> list[FormulaChoiceGroup]:
        return extract_choice_groups(formula)

    def pick_highest_formula_choices(
        self,
        formula: str,
        characteristics: Characteristics,
    ) -> dict[str, str]:
        return pick_highest_choices(
            formula,
            characteristics,
            max_combinations=self._config.max_formula_combinations,
        )

    # --- Skills ------------------------------------------------------------

    def collect_allowed_occupation_skills(self, selection: OccupationSelection | None) -> list[str]:
        return occupation.collect_allowed_occupation_skills(selection, self._catalog)

    def is_allowed_occupation_skill(
        self,
        selection: OccupationSelection | None,
        skill: str,
    ) -> bool:
        return occupation.is_allowed_occupation_skill(selection, skill, self._catalog)

    def compute_skill_breakdown(
        self,
        characteristics: Characteristics,
        skill_allocation: SkillAllocation,
    ) -> dict[str, SkillValue]:
        return skills.compute_skill_breakdown(characteristics, skill_allocation, self._catalog)

    def points_budgets(self, draft: CharacterDraft) -> tuple[int, int]:
        """(occupation, personal) points available to *draft*; 0 while unknown."""
        personal = skills.personal_points_budget(draft.characteristics, self._catalog)
        if draft.occupation is None:
            return 0, personal
        occ = self._catalog.occupation(draft.occupation.name)
        if occ is None:
            return 0, personal
        return (
            skills.occupation_points_budget(
                occ, draft.characteristics, draft.occupation.formula_choices
            ),
            personal,
        )

    def finance_by_credit(self, credit_rating: int) -> FinanceSnapshot:
        return finance_by_credit(credit_rating, self._catalog)

    # --- Validation --------------------------------------------------------

    def validate_step(self, stage: int, draft: CharacterDraft) -> list[ValidationIssue]:
        return validation.validate_step(stage, draft, self._catalog, self._config)

    def first_blocking_stage(self, draft: CharacterDraft) -> WizardStage | None:
        return validation.first_blocking_stage(draft, self._catalog, self._config)

    def finalize_character(self, draft: CharacterDraft) -> CharacterSheet:
        return finalize_character(draft, self._catalog, self._config)

    # --- Draft helpers -----------------------------------------------------

    def roll_all_characteristics(self, draft: CharacterDraft) -> CharacterDraft:
        return draft_ops.roll_all_characteristics(draft, self._catalog, self._config, self._rng)

    def reroll_characteristic(self, draft: CharacterDraft, key: str) -> CharacterDraft:
        return draft_ops.reroll_characteristic(draft, key, self._catalog, self._config, self._rng)

    def select_occupation(
        self,
        draft: CharacterDraft,
        name: str,
        credit_rating: int | None = None,
    ) -> CharacterDraft:
        return draft_ops.select_occupation(draft, name, self._catalog, credit_rating)
