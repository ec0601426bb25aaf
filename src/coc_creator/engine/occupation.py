"""Occupation resolver: turn catalog skill grants into concrete skill names.

Occupation entries are free text from the rulebook:
  - ``"Psicologia"``                       one skill
  - ``"Conducir automovil o Equitacion"``  alternatives
  - ``"Combatir"``                         every cataloged ``Combatir (X)``
  - ``"Cualquier otra habilidad (cualquiera)"``  the whole skill catalog

Choice groups ("pick N of M") are addressed by ChoiceGroupRef. Skills that
can't receive points at creation (Mitos de Cthulhu, Credito) are never
offered in a group even if the pool names them.
"""

from __future__ import annotations

import re
import unicodedata

from coc_creator.models.catalog import Occupation, RulebookCatalog
from coc_creator.models.character import ChoiceGroupRef, OccupationSelection
from coc_creator.models.constants import ANY_SKILL_MARKERS, SPECIALIZABLE_SKILL_FAMILIES


_WHITESPACE_RE = re.compile(r"\s+")
_OR_SPLIT_RE = re.compile(r"\s+o\s+", re.IGNORECASE)
_PARENTHETICAL_RE = re.compile(r"\(.*\)")


# ---------------------------------------------------------------------------
# Name handling
# ---------------------------------------------------------------------------


def normalize_skill_name(skill: str) -> str:
    """Fold accents, lower-case and collapse whitespace: ``"Psicología "`` -> ``"psicologia"``."""
    decomposed = unicodedata.normalize("NFD", skill)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _WHITESPACE_RE.sub(" ", stripped.lower()).strip()


def skill_family(skill: str) -> str | None:
    """Return the specializable family *skill* belongs to, if any."""
    normalized = normalize_skill_name(skill)
    for family in SPECIALIZABLE_SKILL_FAMILIES:
        if (
            normalized == family
            or normalized.startswith(f"{family} (")
            or normalized.startswith(f"{family}(")
        ):
            return family
    return None


def is_any_skill_entry(entry: str) -> bool:
    normalized = normalize_skill_name(entry)
    return any(marker in normalized for marker in ANY_SKILL_MARKERS)


def is_generic_family_entry(entry: str, family: str) -> bool:
    """True for ``"Combatir"`` or ``"... combatir (cualquiera)"`` style grants."""
    normalized = normalize_skill_name(entry)
    return normalized == family or f"{family} (cualquiera)" in normalized


def is_forbidden_skill(skill: str, catalog: RulebookCatalog | None = None) -> bool:
    """True for skills that can't receive points during creation."""
    catalog = catalog or RulebookCatalog.defaults()
    normalized = normalize_skill_name(skill)
    for entry in catalog.cannot_allocate_to:
        stem = _PARENTHETICAL_RE.sub("", normalize_skill_name(entry)).strip()
        if stem and stem in normalized:
            return True
    return False


# ---------------------------------------------------------------------------
# Entry expansion
# ---------------------------------------------------------------------------


def split_or_skills(entry: str, catalog: RulebookCatalog | None = None) -> list[str]:
    """Split an entry into its alternatives; any-skill entries yield the whole catalog."""
    catalog = catalog or RulebookCatalog.defaults()
    if is_any_skill_entry(entry):
        return list(catalog.skills)
    return [part.strip() for part in _OR_SPLIT_RE.split(entry) if part.strip()]


def _expand_family(option: str, catalog: RulebookCatalog) -> list[str]:
    normalized = normalize_skill_name(option)
    if normalized not in SPECIALIZABLE_SKILL_FAMILIES:
        return [option]
    specialized = [
        skill for skill in catalog.skills
        if normalize_skill_name(skill).startswith((f"{normalized} (", f"{normalized}("))
    ]
    return specialized or [option]


def expand_skill_entry(entry: str, catalog: RulebookCatalog | None = None) -> list[str]:
    """Resolve one occupation entry into concrete skill names, order preserved."""
    catalog = catalog or RulebookCatalog.defaults()
    expanded: list[str] = []
    for option in split_or_skills(entry, catalog):
        expanded.extend(_expand_family(option, catalog))
    return list(dict.fromkeys(expanded))


def choice_group_options(
    occupation: Occupation,
    group_index: int,
    catalog: RulebookCatalog | None = None,
) -> list[str]:
    """Every skill the group's pool resolves to (forbidden skills included)."""
    catalog = catalog or RulebookCatalog.defaults()
    if not 0 <= group_index < len(occupation.choice_groups):
        return []
    group = occupation.choice_groups[group_index]
    options: list[str] = []
    for entry in group.candidates:
        options.extend(expand_skill_entry(entry, catalog))
    return list(dict.fromkeys(options))


def selectable_choice_options(
    occupation: Occupation,
    group_index: int,
    catalog: RulebookCatalog | None = None,
) -> list[str]:
    """Group options minus the skills forbidden at creation."""
    catalog = catalog or RulebookCatalog.defaults()
    return [
        skill for skill in choice_group_options(occupation, group_index, catalog)
        if not is_forbidden_skill(skill, catalog)
    ]


def choice_group_refs(occupation: Occupation) -> list[ChoiceGroupRef]:
    return [
        ChoiceGroupRef(occupation.name, index)
        for index in range(len(occupation.choice_groups))
    ]


def default_choice_selections(
    occupation: Occupation,
    catalog: RulebookCatalog | None = None,
) -> dict[ChoiceGroupRef, list[str]]:
    """First ``count`` selectable options of each group."""
    catalog = catalog or RulebookCatalog.defaults()
    return {
        ref: selectable_choice_options(occupation, ref.group_index, catalog)[
            :occupation.choice_groups[ref.group_index].count
        ]
        for ref in choice_group_refs(occupation)
    }


# ---------------------------------------------------------------------------
# Selection queries
# ---------------------------------------------------------------------------


def _selected_in_occupation(
    selection: OccupationSelection,
    occupation: Occupation,
) -> dict[ChoiceGroupRef, list[str]]:
    """Choices that belong to *occupation*; stale refs from another one are ignored."""
    return {
        ref: skills
        for ref, skills in selection.selected_choices.items()
        if ref.occupation_name == occupation.name
        and 0 <= ref.group_index < len(occupation.choice_groups)
    }


def collect_allowed_occupation_skills(
    selection: OccupationSelection | None,
    catalog: RulebookCatalog | None = None,
) -> list[str]:
    """Flat grants expanded plus the skills picked in this occupation's groups."""
    catalog = catalog or RulebookCatalog.defaults()
    if selection is None:
        return []
    occupation = catalog.occupation(selection.name)
    if occupation is None:
        return []

    allowed: list[str] = []
    for entry in occupation.skills:
        allowed.extend(expand_skill_entry(entry, catalog))
    for skills in _selected_in_occupation(selection, occupation).values():
        allowed.extend(skills)
    return list(dict.fromkeys(allowed))


def _has_any_skill_allowance(
    selection: OccupationSelection,
    occupation: Occupation,
) -> bool:
    if any(is_any_skill_entry(entry) for entry in occupation.skills):
        return True

    selected = _selected_in_occupation(selection, occupation)
    for ref, skills in selected.items():
        group = occupation.choice_groups[ref.group_index]
        if skills and any(is_any_skill_entry(entry) for entry in group.candidates):
            return True

    return any(
        is_any_skill_entry(skill)
        for skills in selected.values()
        for skill in skills
    )


def _generic_family_allowances(
    selection: OccupationSelection,
    occupation: Occupation,
) -> set[str]:
    entries = list(occupation.skills)
    for skills in _selected_in_occupation(selection, occupation).values():
        entries.extend(skills)
    return {
        family
        for entry in entries
        for family in SPECIALIZABLE_SKILL_FAMILIES
        if is_generic_family_entry(entry, family)
    }


def is_allowed_occupation_skill(
    selection: OccupationSelection | None,
    skill: str,
    catalog: RulebookCatalog | None = None,
) -> bool:
    """Whether occupation points may go into *skill*.

    Exact membership, an any-skill grant, or a generic family grant
    (``"Combatir"``) covering the skill's family all count.
    """
    catalog = catalog or RulebookCatalog.defaults()
    if selection is None:
        return False
    occupation = catalog.occupation(selection.name)
    if occupation is None:
        return False

    normalized = normalize_skill_name(skill)
    allowed = {
        normalize_skill_name(entry)
        for entry in collect_allowed_occupation_skills(selection, catalog)
    }
    if normalized in allowed:
        return True
    if _has_any_skill_allowance(selection, occupation):
        return True

    family = skill_family(normalized)
    if family is None:
        return False
    return family in _generic_family_allowances(selection, occupation)


def validate_choice_selections(
    selection: OccupationSelection | None,
    catalog: RulebookCatalog | None = None,
) -> list[str]:
    """One message per malformed choice group.

    Blank, out-of-pool and forbidden picks are dropped before the count is
    checked; duplicates are only reported once the count is right.
    """
    catalog = catalog or RulebookCatalog.defaults()
    if selection is None:
        return ["Selecciona una ocupacion."]
    occupation = catalog.occupation(selection.name)
    if occupation is None:
        return ["La ocupacion seleccionada no existe en el catalogo."]

    errors: list[str] = []
    for ref in choice_group_refs(occupation):
        group = occupation.choice_groups[ref.group_index]
        pool = {
            normalize_skill_name(skill)
            for skill in choice_group_options(occupation, ref.group_index, catalog)
        }
        picked = [
            skill for skill in selection.selected_choices.get(ref, [])
            if skill.strip()
            and normalize_skill_name(skill) in pool
            and not is_forbidden_skill(skill, catalog)
        ]

        if len(picked) != group.count:
            errors.append(
                f'Debes seleccionar {group.count} habilidad(es) en "{group.label}".'
            )
            continue

        if len({normalize_skill_name(skill) for skill in picked}) != len(picked):
            errors.append(f'Hay habilidades repetidas en "{group.label}".')

    return errors
