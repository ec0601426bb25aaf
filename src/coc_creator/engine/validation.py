"""Wizard validation: rule checks per creation stage.

validate_step(stage, draft) re-runs every check for stages 1..stage and
returns the issues as data; nothing here raises for a bad draft. Errors
block progression and finalization, warnings are informational.

Each violated rule yields one ValidationIssue per offending item (one per
over-cap skill, one per malformed choice group, ...). Messages are Spanish,
as shown to the player.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from coc_creator.engine.age_modifiers import is_youth, mature_penalty_total
from coc_creator.engine.occupation import (
    is_allowed_occupation_skill,
    is_forbidden_skill,
    validate_choice_selections,
)
from coc_creator.engine.rules_config import RulesConfig
from coc_creator.engine.skills import (
    base_skill_value,
    canonical_skill_names,
    is_credit_skill,
    occupation_points_budget,
    personal_points_budget,
    points_by_skill,
    spent_occupation_points,
    spent_personal_points,
)
from coc_creator.models.catalog import RulebookCatalog
from coc_creator.models.character import (
    CharacterDraft,
    Characteristics,
    SkillAllocation,
    missing_characteristics,
)
from coc_creator.models.constants import (
    CHARACTERISTIC_KEYS,
    FINAL_STAGE,
    FIRST_STAGE,
    Severity,
    WizardStage,
)
from coc_creator.parser.points_formula import (
    extract_choice_groups,
    format_option,
    is_choice_resolved,
)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single rule violation discovered during validation."""

    code: str
    message: str
    field: str         # Dotted path into the draft, e.g. "skills.personal"
    severity: Severity


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


def errors_only(issues: Iterable[ValidationIssue]) -> list[ValidationIssue]:
    return [issue for issue in issues if issue.severity == "error"]


def _error(code: str, message: str, field: str) -> ValidationIssue:
    return ValidationIssue(code=code, message=message, field=field, severity="error")


def _warning(code: str, message: str, field: str) -> ValidationIssue:
    return ValidationIssue(code=code, message=message, field=field, severity="warning")


# ---------------------------------------------------------------------------
# Skill allocation
# ---------------------------------------------------------------------------


def validate_skill_allocation(
    occupation_points: int,
    personal_points: int,
    skills: SkillAllocation,
    credit_rating: int = 0,
    characteristics: Characteristics | None = None,
    *,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
) -> list[ValidationIssue]:
    """Check point budgets, skill caps and creation-forbidden skills.

    Without *characteristics* every base counts as 0, so only the points
    themselves are checked against the caps.
    """
    catalog = catalog or RulebookCatalog.defaults()
    config = config or RulesConfig()
    issues: list[ValidationIssue] = []

    # Forbidden skills
    for skill, points in skills.personal.items():
        if points > 0 and is_forbidden_skill(skill, catalog):
            issues.append(_error(
                "FORBIDDEN_SKILL",
                f"{skill} no puede recibir puntos en creacion inicial",
                "skills.personal",
            ))

    # Budgets
    spent_occupation = spent_occupation_points(skills, credit_rating)
    spent_personal = spent_personal_points(skills)
    if spent_occupation > occupation_points:
        issues.append(_error(
            "OCCUPATION_POINTS_EXCEEDED",
            "Se excedieron los puntos de ocupacion (incluyendo Credito).",
            "skills.occupation",
        ))
    elif spent_occupation < occupation_points:
        issues.append(_warning(
            "OCCUPATION_POINTS_PENDING",
            f"Quedan {occupation_points - spent_occupation} puntos de ocupacion por asignar.",
            "skills.occupation",
        ))

    if spent_personal > personal_points:
        issues.append(_error(
            "PERSONAL_POINTS_EXCEEDED",
            "Se excedieron los puntos de interes personal.",
            "skills.personal",
        ))
    elif spent_personal < personal_points:
        issues.append(_warning(
            "PERSONAL_POINTS_PENDING",
            f"Quedan {personal_points - spent_personal} puntos de interes personal por asignar.",
            "skills.personal",
        ))

    # Caps
    occupation_map = points_by_skill(skills.occupation)
    personal_map = points_by_skill(skills.personal)
    canonical = canonical_skill_names(skills.occupation, skills.personal)
    for normalized, skill in canonical.items():
        if is_credit_skill(skill):
            continue
        base = base_skill_value(skill, characteristics, catalog) if characteristics else 0
        total = base + occupation_map.get(normalized, 0) + personal_map.get(normalized, 0)

        if total > config.absolute_skill_cap:
            issues.append(_error(
                "SKILL_ABSOLUTE_CAP_EXCEEDED",
                f"{skill} supera el tope absoluto de {config.absolute_skill_cap}%.",
                f"skills.{skill}",
            ))
            continue

        if total > config.creation_skill_cap:
            issues.append(ValidationIssue(
                code="SKILL_CREATION_CAP_EXCEEDED",
                message=(
                    f"{skill} supera el tope recomendado de creacion "
                    f"({config.creation_skill_cap}%)."
                ),
                field=f"skills.{skill}",
                severity=config.creation_cap_severity,
            ))

    return issues


# ---------------------------------------------------------------------------
# Stage checks
# ---------------------------------------------------------------------------


def _check_age(draft: CharacterDraft, config: RulesConfig) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if draft.age < config.min_age or draft.age > config.max_age:
        issues.append(_warning(
            "AGE_RANGE",
            f"Edad fuera de {config.min_age}-{config.max_age}. "
            f"Requiere confirmacion del guardian.",
            "age",
        ))

    allocation = draft.age_penalty_allocation
    if is_youth(draft.age) and allocation.youth_total != config.youth_penalty_total:
        issues.append(_error(
            "AGE_YOUTH_PENALTY_MISMATCH",
            f"El reparto de penalizador para FUE/TAM debe sumar exactamente "
            f"{config.youth_penalty_total}.",
            "age_penalty_allocation",
        ))

    target = mature_penalty_total(draft.age)
    if target > 0 and allocation.mature_total != target:
        issues.append(_error(
            "AGE_MATURE_PENALTY_MISMATCH",
            f"El reparto de penalizador para FUE/CON/DES debe sumar exactamente {target}.",
            "age_penalty_allocation",
        ))
    return issues


def _check_characteristics(draft: CharacterDraft, config: RulesConfig) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if missing_characteristics(draft.characteristics):
        issues.append(_error(
            "MISSING_CHARACTERISTICS",
            "Completa todas las caracteristicas.",
            "characteristics",
        ))
        return issues

    for key in CHARACTERISTIC_KEYS:
        value = draft.characteristics[key]
        if value < config.characteristic_min or value > config.characteristic_max:
            issues.append(_error(
                "CHARACTERISTIC_RANGE",
                f"{key} = {value} fuera del rango "
                f"{config.characteristic_min}-{config.characteristic_max}.",
                f"characteristics.{key}",
            ))

    if draft.last_rolled_age is not None and draft.last_rolled_age != draft.age:
        issues.append(_warning(
            "AGE_ROLL_MISMATCH",
            "La edad cambio tras la tirada aleatoria. Repite la tirada para "
            "reaplicar modificadores de edad.",
            "age",
        ))
    return issues


def _check_occupation(draft: CharacterDraft, catalog: RulebookCatalog) -> list[ValidationIssue]:
    selection = draft.occupation
    if selection is None:
        return [_error("MISSING_OCCUPATION", "Selecciona una ocupacion.", "occupation")]

    occupation = catalog.occupation(selection.name)
    if occupation is None:
        return [_error(
            "INVALID_OCCUPATION",
            "La ocupacion seleccionada no existe en el catalogo.",
            "occupation.name",
        )]

    if not occupation.available_in(draft.era):
        return [_error(
            "OCCUPATION_ERA",
            f"La ocupacion {occupation.name} no esta disponible en la era {draft.era}.",
            "occupation.name",
        )]

    if not occupation.credit_min <= selection.credit_rating <= occupation.credit_max:
        return [_error(
            "CREDIT_RANGE",
            f"Credito fuera del rango permitido ({occupation.credit_range}).",
            "occupation.credit_rating",
        )]
    return []


def _check_occupation_choices(draft: CharacterDraft, catalog: RulebookCatalog) -> list[ValidationIssue]:
    selection = draft.occupation
    occupation = catalog.occupation(selection.name) if selection else None
    if selection is None or occupation is None:
        # Already reported by the occupation stage
        return []

    issues = [
        _error("OCCUPATION_CHOICE_GROUP", message, "occupation.selected_choices")
        for message in validate_choice_selections(selection, catalog)
    ]
    for group in extract_choice_groups(occupation.points_formula):
        if not is_choice_resolved(group, selection.formula_choices):
            options = format_option(" o ".join(group.options))
            issues.append(_error(
                "OCCUPATION_FORMULA_CHOICE",
                f"Debes elegir una opcion para la formula de puntos ({options}).",
                f"occupation.formula_choices.{group.key}",
            ))
    return issues


def _check_skills(
    draft: CharacterDraft,
    catalog: RulebookCatalog,
    config: RulesConfig,
) -> list[ValidationIssue]:
    selection = draft.occupation
    occupation = catalog.occupation(selection.name) if selection else None
    if selection is None or occupation is None:
        return []
    if missing_characteristics(draft.characteristics):
        return []

    issues = validate_skill_allocation(
        occupation_points_budget(occupation, draft.characteristics, selection.formula_choices),
        personal_points_budget(draft.characteristics, catalog),
        draft.skills,
        selection.credit_rating,
        draft.characteristics,
        catalog=catalog,
        config=config,
    )

    for skill, points in draft.skills.occupation.items():
        if points <= 0 or is_credit_skill(skill):
            continue
        # "Any skill" groups would otherwise admit these
        if is_forbidden_skill(skill, catalog):
            issues.append(_error(
                "INVALID_OCCUPATION_SKILL",
                f"{skill} no puede recibir puntos de ocupacion en creacion inicial.",
                f"skills.occupation.{skill}",
            ))
        elif not is_allowed_occupation_skill(selection, skill, catalog):
            issues.append(_error(
                "INVALID_OCCUPATION_SKILL",
                f"{skill} no pertenece a las habilidades permitidas por la "
                f"ocupacion seleccionada.",
                f"skills.occupation.{skill}",
            ))
    return issues


def _check_background(
    draft: CharacterDraft,
    catalog: RulebookCatalog,
    config: RulesConfig,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    background = draft.background
    filled = sum(
        1 for name in catalog.background_categories if getattr(background, name).strip()
    )

    if filled < config.background_minimum:
        issues.append(_error(
            "MISSING_BACKGROUND_MINIMUM",
            f"Debes completar al menos {config.background_minimum} categorias de "
            f"trasfondo (descripcion, ideologia/creencias, allegados, lugares, "
            f"posesiones o rasgos).",
            "background",
        ))

    if not background.vinculo_principal.strip():
        issues.append(_error(
            "MISSING_CORE_CONNECTION",
            "Debes indicar el vinculo fundamental del investigador.",
            "background.vinculo_principal",
        ))
    return issues


_EQUIPMENT_CHECKS: tuple[tuple[str, str, str], ...] = (
    ("spending_level", "MISSING_SPENDING_LEVEL", "Completa el nivel de gasto (Tabla II)."),
    ("cash", "MISSING_CASH", "Completa el dinero en efectivo (Tabla II)."),
    ("assets", "MISSING_ASSETS", "Completa las propiedades/bienes (Tabla II)."),
    ("notes", "MISSING_EQUIPMENT_NOTES", "Anota armas/equipo/objetos importantes."),
)


def _check_equipment(draft: CharacterDraft) -> list[ValidationIssue]:
    return [
        _error(code, message, f"equipment.{name}")
        for name, code, message in _EQUIPMENT_CHECKS
        if not getattr(draft.equipment, name).strip()
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _coerce_stage(stage: int) -> WizardStage:
    try:
        return WizardStage(stage)
    except ValueError:
        raise ValueError(
            f"stage must be between {FIRST_STAGE.value} and {FINAL_STAGE.value}, got {stage}"
        ) from None


def validate_step(
    stage: int,
    draft: CharacterDraft,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
) -> list[ValidationIssue]:
    """Run every check for stages up to and including *stage*."""
    stage = _coerce_stage(stage)
    catalog = catalog or RulebookCatalog.defaults()
    config = config or RulesConfig()
    issues: list[ValidationIssue] = []

    issues.extend(_check_age(draft, config))
    if stage >= WizardStage.CHARACTERISTICS:
        issues.extend(_check_characteristics(draft, config))
    if stage >= WizardStage.OCCUPATION:
        issues.extend(_check_occupation(draft, catalog))
    if stage >= WizardStage.OCCUPATION_CHOICES:
        issues.extend(_check_occupation_choices(draft, catalog))
    if stage >= WizardStage.SKILLS:
        issues.extend(_check_skills(draft, catalog, config))
    if stage >= WizardStage.BACKGROUND:
        issues.extend(_check_background(draft, catalog, config))
    if stage >= WizardStage.EQUIPMENT:
        issues.extend(_check_equipment(draft))
    return issues


def first_blocking_stage(
    draft: CharacterDraft,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
) -> WizardStage | None:
    """Lowest stage whose validation has errors, or None if the draft is complete."""
    catalog = catalog or RulebookCatalog.defaults()
    for stage in WizardStage:
        if has_errors(validate_step(stage, draft, catalog, config)):
            return stage
    return None
