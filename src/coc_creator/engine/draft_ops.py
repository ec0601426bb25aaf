"""Draft transforms for the creation wizard.

Every function takes a CharacterDraft and returns a modified deep copy; the
input is never touched, so the caller can keep history or discard a change
freely. Invalid direct input (negative points, unknown field names, an
occupation that isn't in the catalog) raises ValueError. Rule violations
that the player is allowed to leave in place for a while (budgets, caps,
missing sections) are left to validation.
"""

from __future__ import annotations

import copy
import dataclasses
import random
from typing import Literal

from coc_creator.engine.age_modifiers import (
    apply_age_modifiers,
    roll_characteristic_with_age_modifiers,
    roll_characteristics,
)
from coc_creator.engine.occupation import default_choice_selections
from coc_creator.engine.rules_config import RulesConfig
from coc_creator.logging_config import get_logger
from coc_creator.models.catalog import RulebookCatalog
from coc_creator.models.character import (
    BACKGROUND_FIELDS,
    EQUIPMENT_TEXT_FIELDS,
    IDENTITY_FIELDS,
    AgePenaltyAllocation,
    CharacterDraft,
    ChoiceGroupRef,
    Companion,
    OccupationSelection,
)
from coc_creator.models.constants import CHARACTERISTIC_KEY_SET
from coc_creator.models.finance import finance_by_credit
from coc_creator.parser.points_formula import (
    first_option_choices,
    normalize_formula,
    pick_highest_choices,
)


logger = get_logger(__name__)

SkillBucket = Literal["occupation", "personal"]


def _copy(draft: CharacterDraft) -> CharacterDraft:
    return copy.deepcopy(draft)


def _require_occupation(draft: CharacterDraft) -> OccupationSelection:
    if draft.occupation is None:
        raise ValueError("No occupation selected")
    return draft.occupation


# --- Lifecycle -------------------------------------------------------------


def new_draft(age: int = 25, era: str = "clasica") -> CharacterDraft:
    """A blank draft with default age, era and penalty split."""
    return CharacterDraft(age=age, era=era)


def reset() -> CharacterDraft:
    """Discard everything and start over."""
    return new_draft()


# --- Age -------------------------------------------------------------------


def set_age(draft: CharacterDraft, age: int) -> CharacterDraft:
    """Change the age. Characteristics are kept; validation flags the stale roll."""
    if isinstance(age, bool) or not isinstance(age, int):
        raise ValueError(f"age must be an integer, got {age!r}")
    result = _copy(draft)
    result.age = age
    return result


def set_era(
    draft: CharacterDraft,
    era: str,
    catalog: RulebookCatalog | None = None,
) -> CharacterDraft:
    catalog = catalog or RulebookCatalog.defaults()
    if era not in catalog.eras:
        raise ValueError(f"era must be one of {list(catalog.eras)}, got {era!r}")
    result = _copy(draft)
    result.era = era
    return result


def set_age_penalty_allocation(draft: CharacterDraft, **changes: int) -> CharacterDraft:
    """Update some fields of the age-penalty split, keeping the rest."""
    valid = {f.name for f in dataclasses.fields(AgePenaltyAllocation)}
    unknown = sorted(set(changes) - valid)
    if unknown:
        raise ValueError(f"Unknown allocation fields: {unknown}")
    result = _copy(draft)
    result.age_penalty_allocation = dataclasses.replace(draft.age_penalty_allocation, **changes)
    return result


# --- Characteristics -------------------------------------------------------


def roll_all_characteristics(
    draft: CharacterDraft,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
    rng: random.Random | None = None,
) -> CharacterDraft:
    """Roll all nine characteristics and apply the age rules for the current age."""
    catalog = catalog or RulebookCatalog.defaults()
    rolled = roll_characteristics(catalog, rng)
    adjusted = apply_age_modifiers(
        rolled,
        draft.age,
        draft.age_penalty_allocation,
        catalog=catalog,
        config=config,
        rng=rng,
    )
    result = _copy(draft)
    result.characteristics = adjusted.characteristics
    result.last_rolled_age = draft.age
    logger.debug("Rolled characteristics", age=draft.age, **adjusted.characteristics)
    return result


def reroll_characteristic(
    draft: CharacterDraft,
    key: str,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
    rng: random.Random | None = None,
) -> CharacterDraft:
    """Roll one characteristic again, age rules included.

    last_rolled_age is left alone: the other eight values still carry the
    modifiers of the age they were rolled for.
    """
    _check_characteristic_key(key)
    roll = roll_characteristic_with_age_modifiers(
        key,
        draft.age,
        draft.age_penalty_allocation,
        catalog=catalog,
        config=config,
        rng=rng,
    )
    result = _copy(draft)
    result.characteristics[key] = roll.final_value
    return result


def set_characteristic(draft: CharacterDraft, key: str, value: int) -> CharacterDraft:
    """Enter a value by hand. Range problems are reported by validation."""
    _check_characteristic_key(key)
    result = _copy(draft)
    result.characteristics[key] = int(value)
    return result


def clear_characteristics(draft: CharacterDraft) -> CharacterDraft:
    result = _copy(draft)
    result.characteristics = {}
    result.last_rolled_age = None
    return result


def _check_characteristic_key(key: str) -> None:
    if key not in CHARACTERISTIC_KEY_SET:
        raise ValueError(f"Unknown characteristic: {key!r}")


# --- Occupation ------------------------------------------------------------


def select_occupation(
    draft: CharacterDraft,
    name: str,
    catalog: RulebookCatalog | None = None,
    credit_rating: int | None = None,
) -> CharacterDraft:
    """Pick an occupation.

    Re-selecting the current occupation keeps the player's choices. A new
    occupation starts at its minimum credit rating with the first options
    of every choice group and formula branch.
    """
    catalog = catalog or RulebookCatalog.defaults()
    occupation = catalog.occupation(name)
    if occupation is None:
        raise ValueError(f"Unknown occupation: {name!r}")
    if not occupation.available_in(draft.era):
        raise ValueError(f"Occupation {name!r} is not available in era {draft.era!r}")

    result = _copy(draft)
    if result.occupation is not None and result.occupation.name == name:
        if credit_rating is not None:
            result.occupation.credit_rating = credit_rating
        return result

    result.occupation = OccupationSelection(
        name=name,
        credit_rating=occupation.credit_min if credit_rating is None else credit_rating,
        selected_choices=default_choice_selections(occupation, catalog),
        formula_choices=first_option_choices(occupation.points_formula),
    )
    return result


def set_credit_rating(draft: CharacterDraft, credit_rating: int) -> CharacterDraft:
    if credit_rating < 0:
        raise ValueError(f"credit rating must be >= 0, got {credit_rating}")
    _require_occupation(draft)
    result = _copy(draft)
    result.occupation.credit_rating = credit_rating
    return result


def set_choice_selection(
    draft: CharacterDraft,
    ref: ChoiceGroupRef,
    skills: list[str],
    catalog: RulebookCatalog | None = None,
) -> CharacterDraft:
    """Replace the picks of one choice group."""
    catalog = catalog or RulebookCatalog.defaults()
    selection = _require_occupation(draft)
    if ref.occupation_name != selection.name:
        raise ValueError(
            f"Choice group belongs to {ref.occupation_name!r}, "
            f"current occupation is {selection.name!r}"
        )
    occupation = catalog.occupation(selection.name)
    if occupation is None or not 0 <= ref.group_index < len(occupation.choice_groups):
        raise ValueError(f"No choice group {ref.group_index} in {selection.name!r}")

    result = _copy(draft)
    result.occupation.selected_choices[ref] = list(skills)
    return result


def set_formula_choice(draft: CharacterDraft, key: str, option: str) -> CharacterDraft:
    """Store the branch picked for one formula group, e.g. ``"choice_0"`` -> ``"DES x2"``."""
    _require_occupation(draft)
    result = _copy(draft)
    result.occupation.formula_choices[key] = normalize_formula(option)
    return result


def apply_highest_formula_choices(
    draft: CharacterDraft,
    catalog: RulebookCatalog | None = None,
    config: RulesConfig | None = None,
) -> CharacterDraft:
    """Set every formula branch to the combination giving the most points.

    An explicit player request; it replaces earlier branch picks.
    """
    catalog = catalog or RulebookCatalog.defaults()
    config = config or RulesConfig()
    selection = _require_occupation(draft)
    occupation = catalog.occupation(selection.name)
    if occupation is None:
        raise ValueError(f"Unknown occupation: {selection.name!r}")

    best = pick_highest_choices(
        occupation.points_formula,
        draft.characteristics,
        max_combinations=config.max_formula_combinations,
    )
    result = _copy(draft)
    result.occupation.formula_choices.update(best)
    return result


def apply_finance_defaults(
    draft: CharacterDraft,
    catalog: RulebookCatalog | None = None,
) -> CharacterDraft:
    """Fill the spending level from the occupation's credit rating."""
    selection = _require_occupation(draft)
    snapshot = finance_by_credit(selection.credit_rating, catalog)
    result = _copy(draft)
    result.equipment = dataclasses.replace(result.equipment, spending_level=snapshot.spending_level)
    return result


# --- Skills ----------------------------------------------------------------


def set_skill_points(
    draft: CharacterDraft,
    bucket: SkillBucket,
    skill: str,
    points: int,
) -> CharacterDraft:
    """Assign *points* to *skill* in the occupation or personal budget."""
    if bucket not in ("occupation", "personal"):
        raise ValueError(f"bucket must be 'occupation' or 'personal', got {bucket!r}")
    if points < 0:
        raise ValueError(f"Skill points must be >= 0, got {points} for {skill!r}")
    if not skill.strip():
        raise ValueError("Skill name is empty")
    result = _copy(draft)
    getattr(result.skills, bucket)[skill] = int(points)
    return result


# --- Sheet sections --------------------------------------------------------


def set_background_field(draft: CharacterDraft, field: str, value: str) -> CharacterDraft:
    if field not in BACKGROUND_FIELDS:
        raise ValueError(f"Unknown background field: {field!r}")
    result = _copy(draft)
    result.background = dataclasses.replace(result.background, **{field: value})
    return result


def set_identity_field(draft: CharacterDraft, field: str, value: str) -> CharacterDraft:
    if field not in IDENTITY_FIELDS:
        raise ValueError(f"Unknown identity field: {field!r}")
    result = _copy(draft)
    result.identity = dataclasses.replace(result.identity, **{field: value})
    return result


def set_companion(draft: CharacterDraft, index: int, companion: Companion) -> CharacterDraft:
    """Replace the companion at *index*, or append when *index* is one past the end."""
    if not 0 <= index <= len(draft.companions):
        raise ValueError(f"Companion index {index} out of range (0-{len(draft.companions)})")
    result = _copy(draft)
    if index == len(result.companions):
        result.companions.append(companion)
    else:
        result.companions[index] = companion
    return result


def remove_companion(draft: CharacterDraft, index: int) -> CharacterDraft:
    if not 0 <= index < len(draft.companions):
        raise ValueError(f"No companion at index {index}")
    result = _copy(draft)
    del result.companions[index]
    return result


def set_equipment_field(
    draft: CharacterDraft,
    field: str,
    value: str | list[str],
) -> CharacterDraft:
    """Set a Tabla II field (spending level, cash, assets), the notes, or the item list."""
    if field == "items":
        if isinstance(value, str):
            raise ValueError("equipment items must be a list of strings")
        result = _copy(draft)
        result.equipment = dataclasses.replace(result.equipment, items=tuple(value))
        return result
    if field not in EQUIPMENT_TEXT_FIELDS:
        raise ValueError(f"Unknown equipment field: {field!r}")
    result = _copy(draft)
    result.equipment = dataclasses.replace(result.equipment, **{field: value})
    return result
