"""Skill values and point budgets.

Skills are merged by normalised name, so ``"Psicología"`` and
``"psicologia"`` in two maps are the same skill; the first spelling seen
(catalog first) is the one reported.

Credito is a skill on the sheet but its value is the occupation's credit
rating, so it's left out of both point sums. The occupation sum adds the
credit rating instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from coc_creator.engine.occupation import normalize_skill_name
from coc_creator.models.catalog import Occupation, RulebookCatalog
from coc_creator.models.character import (
    Characteristics,
    SkillAllocation,
    require_characteristics,
)
from coc_creator.models.constants import CREDIT_SKILL, DODGE_SKILL, OWN_LANGUAGE_SKILL
from coc_creator.parser.points_formula import evaluate_points_formula


@dataclass(frozen=True, slots=True)
class SkillValue:
    """One row of the computed skill table."""

    base: int
    occupation: int
    personal: int
    total: int
    hard: int
    extreme: int


def is_credit_skill(skill: str) -> bool:
    return normalize_skill_name(skill) == CREDIT_SKILL


def base_skill_value(
    skill: str,
    characteristics: Mapping[str, int],
    catalog: RulebookCatalog | None = None,
) -> int:
    """Rulebook base for *skill*; unknown skills start at 0."""
    catalog = catalog or RulebookCatalog.defaults()
    normalized = normalize_skill_name(skill)

    if normalized == OWN_LANGUAGE_SKILL or normalized.startswith(f"{OWN_LANGUAGE_SKILL} ("):
        return int(characteristics.get("EDU", 0))
    if normalized == DODGE_SKILL:
        return int(characteristics.get("DES", 0)) // 2

    if normalized in catalog.skill_base_values:
        return catalog.skill_base_values[normalized]

    for family in catalog.family_base_values:
        if normalized.startswith(family.prefix):
            return family.base

    return 0


def points_by_skill(points: Mapping[str, int]) -> dict[str, int]:
    """Sum a points map by normalised skill name."""
    merged: dict[str, int] = {}
    for skill, value in points.items():
        key = normalize_skill_name(skill)
        merged[key] = merged.get(key, 0) + int(value)
    return merged


def canonical_skill_names(*sources: Iterable[str]) -> dict[str, str]:
    """Map normalised name -> first spelling seen across *sources*, in order."""
    canonical: dict[str, str] = {}
    for source in sources:
        for skill in source:
            canonical.setdefault(normalize_skill_name(skill), skill)
    return canonical


def compute_skill_breakdown(
    characteristics: Characteristics,
    skills: SkillAllocation,
    catalog: RulebookCatalog | None = None,
    extra_skills: Iterable[str] = (),
) -> dict[str, SkillValue]:
    """Compute base/occupation/personal/total for every known skill.

    Covers the whole catalog, any *extra_skills* (typically the occupation's
    resolved grants) and every skill named in the allocation maps, so
    house-ruled free-text skills still show up.
    """
    require_characteristics(characteristics)
    catalog = catalog or RulebookCatalog.defaults()

    occupation_points = points_by_skill(skills.occupation)
    personal_points = points_by_skill(skills.personal)
    canonical = canonical_skill_names(
        catalog.skills,
        extra_skills,
        skills.occupation,
        skills.personal,
    )

    breakdown: dict[str, SkillValue] = {}
    for normalized, skill in canonical.items():
        base = base_skill_value(skill, characteristics, catalog)
        occupation = occupation_points.get(normalized, 0)
        personal = personal_points.get(normalized, 0)
        total = base + occupation + personal
        breakdown[skill] = SkillValue(
            base=base,
            occupation=occupation,
            personal=personal,
            total=total,
            hard=total // 2,
            extreme=total // 5,
        )
    return breakdown


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


def occupation_points_budget(
    occupation: Occupation,
    characteristics: Mapping[str, int],
    formula_choices: Mapping[str, str] | None = None,
) -> int:
    """Occupation points granted by the occupation's formula."""
    return evaluate_points_formula(occupation.points_formula, characteristics, formula_choices)


def personal_points_budget(
    characteristics: Mapping[str, int],
    catalog: RulebookCatalog | None = None,
) -> int:
    """Personal interest points, ``INT x2`` in the core rules."""
    catalog = catalog or RulebookCatalog.defaults()
    return evaluate_points_formula(catalog.personal_points_formula, characteristics)


def spent_occupation_points(skills: SkillAllocation, credit_rating: int = 0) -> int:
    """Occupation points used, credit rating included."""
    spent = sum(
        points for skill, points in skills.occupation.items()
        if not is_credit_skill(skill)
    )
    return spent + credit_rating


def spent_personal_points(skills: SkillAllocation) -> int:
    return sum(
        points for skill, points in skills.personal.items()
        if not is_credit_skill(skill)
    )
