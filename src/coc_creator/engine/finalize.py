"""Seal a fully valid draft into an immutable CharacterSheet."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from coc_creator.engine.occupation import collect_allowed_occupation_skills
from coc_creator.engine.rules_config import RulesConfig
from coc_creator.engine.skills import SkillValue, compute_skill_breakdown
from coc_creator.engine.validation import ValidationIssue, errors_only, validate_step
from coc_creator.logging_config import get_logger
from coc_creator.models.catalog import RulebookCatalog
from coc_creator.models.character import (
    Background,
    CharacterDraft,
    ChoiceGroupRef,
    Companion,
    Equipment,
    Identity,
    OccupationSelection,
    SkillAllocation,
)
from coc_creator.models.constants import FINAL_STAGE
from coc_creator.models.derived_stats import DerivedStats, compute_derived_stats


logger = get_logger(__name__)

_EDU_CAP = 99


class FinalizationError(ValueError):
    """The draft still has validation errors; carries every one of them."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        joined = " | ".join(issue.message for issue in issues)
        super().__init__(f"No se puede finalizar: {joined}")


@dataclass(frozen=True, slots=True)
class SheetOccupation:
    """Read-only copy of the occupation picks."""

    name: str
    credit_rating: int
    selected_choices: Mapping[ChoiceGroupRef, tuple[str, ...]]
    formula_choices: Mapping[str, str]

    @classmethod
    def from_selection(cls, selection: OccupationSelection) -> SheetOccupation:
        return cls(
            name=selection.name,
            credit_rating=selection.credit_rating,
            selected_choices=MappingProxyType({
                ref: tuple(skills) for ref, skills in selection.selected_choices.items()
            }),
            formula_choices=MappingProxyType(dict(selection.formula_choices)),
        )


@dataclass(frozen=True, slots=True)
class SheetSkills:
    """Read-only copy of the points spent per skill."""

    occupation: Mapping[str, int]
    personal: Mapping[str, int]

    @classmethod
    def from_allocation(cls, allocation: SkillAllocation) -> SheetSkills:
        return cls(
            occupation=MappingProxyType(dict(allocation.occupation)),
            personal=MappingProxyType(dict(allocation.personal)),
        )


@dataclass(frozen=True)
class CharacterSheet:
    """A finished investigator. Only finalize_character() builds one.

    Every field is read-only: maps are MappingProxyType views over private
    copies and the sections are frozen dataclasses.
    """

    mode: str
    age: int
    era: str
    characteristics: Mapping[str, int]
    derived_stats: DerivedStats
    occupation: SheetOccupation
    skills: SheetSkills
    computed_skills: Mapping[str, SkillValue]
    background: Background
    identity: Identity
    companions: tuple[Companion, ...] = ()
    equipment: Equipment = field(default_factory=Equipment)


def finalize_character(
    draft: CharacterDraft,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
) -> CharacterSheet:
    """Validate *draft* through the last stage and freeze it.

    Raises FinalizationError listing every error if anything is left to fix.
    The sheet holds its own copies, so editing the draft afterwards leaves
    the sheet untouched.
    """
    catalog = catalog or RulebookCatalog.defaults()
    errors = errors_only(validate_step(FINAL_STAGE, draft, catalog, config))
    if errors:
        raise FinalizationError(errors)
    if draft.occupation is None:
        raise FinalizationError([ValidationIssue(
            code="MISSING_OCCUPATION",
            message="Borrador incompleto: falta la ocupacion.",
            field="occupation",
            severity="error",
        )])

    characteristics = dict(draft.characteristics)
    characteristics["EDU"] = min(_EDU_CAP, characteristics["EDU"])
    derived = compute_derived_stats(characteristics, draft.age, catalog)
    computed_skills = compute_skill_breakdown(
        characteristics,
        draft.skills,
        catalog,
        extra_skills=collect_allowed_occupation_skills(draft.occupation, catalog),
    )

    sheet = CharacterSheet(
        mode=draft.mode,
        age=draft.age,
        era=draft.era,
        characteristics=MappingProxyType(characteristics),
        derived_stats=dataclasses.replace(
            derived,
            hard=MappingProxyType(dict(derived.hard)),
            extreme=MappingProxyType(dict(derived.extreme)),
        ),
        occupation=SheetOccupation.from_selection(draft.occupation),
        skills=SheetSkills.from_allocation(draft.skills),
        computed_skills=MappingProxyType(computed_skills),
        background=draft.background,
        identity=draft.identity,
        companions=tuple(draft.companions),
        equipment=dataclasses.replace(draft.equipment, items=tuple(draft.equipment.items)),
    )
    logger.info(
        "Finalized investigator",
        nombre=draft.identity.nombre,
        occupation=draft.occupation.name,
        age=draft.age,
    )
    return sheet

