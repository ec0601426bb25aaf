"""Rulebook reference data with typed accessors.

Wraps the JSON files shipped in ``coc_creator/data``: the rules block
(generation formulas, base-skill table, build table, finance bands), the
investigator skill list, and the occupation catalog. Every dice formula is
parsed on load, so a malformed rulebook fails here rather than mid-roll.

The catalog is read-only once built: collections are tuples and entries are
frozen dataclasses. Use RulebookCatalog.defaults() for the packaged data or
from_dir() to point at a house-ruled copy.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from coc_creator.logging_config import get_logger
from coc_creator.models.character import BACKGROUND_FIELDS
from coc_creator.models.constants import CHARACTERISTIC_KEYS
from coc_creator.parser.dice_formula import DiceFormula


logger = get_logger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

_RULES_FILE = "rules.json"
_SKILLS_FILE = "skills.json"
_OCCUPATIONS_FILE = "occupations.json"

# vinculo_principal is always mandatory, so it never counts toward the minimum
_OPTIONAL_BACKGROUND_FIELDS = frozenset(BACKGROUND_FIELDS) - {"vinculo_principal"}


class CatalogError(ValueError):
    """Reference data is missing keys or holds values the engine can't use."""


@dataclass(frozen=True, slots=True)
class ChoiceGroup:
    """A "pick *count* of *candidates*" block inside an occupation."""

    count: int
    candidates: tuple[str, ...]
    label: str


@dataclass(frozen=True, slots=True)
class Occupation:
    """A profession template from the occupation catalog."""

    name: str
    credit_min: int
    credit_max: int
    points_formula: str
    skills: tuple[str, ...]
    choice_groups: tuple[ChoiceGroup, ...] = ()
    tags: tuple[str, ...] = ()

    def available_in(self, era: str) -> bool:
        """Untagged occupations fit every era."""
        return not self.tags or era in self.tags

    @property
    def credit_range(self) -> str:
        return f"{self.credit_min}-{self.credit_max}"


@dataclass(frozen=True, slots=True)
class BuildBand:
    """Row of the build / damage bonus table, keyed by FUE+TAM."""

    min_sum: int
    max_sum: int
    build: int
    damage_bonus: str


@dataclass(frozen=True, slots=True)
class FinanceBand:
    """Spending level granted by a range of credit rating."""

    min_credit: int
    max_credit: int
    spending_level: str


@dataclass(frozen=True, slots=True)
class FamilyBase:
    """Base value for every skill whose normalised name starts with *prefix*."""

    prefix: str
    base: int


@dataclass(frozen=True)
class RulebookCatalog:
    """Typed accessor over the rulebook JSON files."""

    version: str
    generation_formulas: dict[str, DiceFormula]
    personal_points_formula: str
    cannot_allocate_to: tuple[str, ...]
    build_table: tuple[BuildBand, ...]
    skill_base_values: dict[str, int]
    family_base_values: tuple[FamilyBase, ...]
    finance_bands: tuple[FinanceBand, ...]
    background_categories: tuple[str, ...]
    eras: tuple[str, ...]
    skills: tuple[str, ...]
    occupations: tuple[Occupation, ...]
    _by_name: dict[str, Occupation] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_name.update({occ.name: occ for occ in self.occupations})

    def occupation(self, name: str) -> Occupation | None:
        """Look up an occupation by its exact catalog name."""
        return self._by_name.get(name)

    def occupation_names(self) -> list[str]:
        return [occ.name for occ in self.occupations]

    def occupations_for_era(self, era: str) -> list[Occupation]:
        """Occupations playable in *era*, in catalog order."""
        return [occ for occ in self.occupations if occ.available_in(era)]

    def generation_formula(self, key: str) -> DiceFormula:
        try:
            return self.generation_formulas[key]
        except KeyError:
            raise ValueError(f"Unknown characteristic: {key!r}") from None

    # --- Loading -----------------------------------------------------------

    @classmethod
    def from_dir(cls, data_dir: Path) -> RulebookCatalog:
        """Load the three rulebook JSON files from *data_dir*."""
        rules = _read_json(data_dir / _RULES_FILE)
        skills = _read_json(data_dir / _SKILLS_FILE)
        occupations = _read_json(data_dir / _OCCUPATIONS_FILE)
        catalog = cls.from_dicts(rules, skills, occupations)
        logger.debug(
            "Loaded rulebook catalog",
            data_dir=str(data_dir),
            version=catalog.version,
            occupations=len(catalog.occupations),
            skills=len(catalog.skills),
        )
        return catalog

    @classmethod
    def from_dicts(
        cls,
        rules: dict[str, Any],
        skills: dict[str, Any],
        occupations: dict[str, Any],
    ) -> RulebookCatalog:
        """Build a catalog from already-decoded JSON documents."""
        try:
            generation = rules["characteristics_generation"]
            point_rules = rules["skill_point_rules"]
            missing = [key for key in CHARACTERISTIC_KEYS if key not in generation]
            if missing:
                raise CatalogError(f"Missing generation formulas for {missing}")

            return cls(
                version=str(rules.get("version", "")),
                generation_formulas={
                    key: DiceFormula.parse(generation[key]) for key in CHARACTERISTIC_KEYS
                },
                personal_points_formula=point_rules["personal_interest_points"],
                cannot_allocate_to=tuple(point_rules.get("cannot_allocate_to", [])),
                build_table=tuple(
                    BuildBand(
                        min_sum=int(row["min"]),
                        max_sum=int(row["max"]),
                        build=int(row["build"]),
                        damage_bonus=str(row["damage_bonus"]),
                    )
                    for row in rules["build_and_damage_bonus"]
                ),
                skill_base_values={
                    str(name): int(value)
                    for name, value in rules.get("skill_base_values", {}).items()
                },
                family_base_values=tuple(
                    FamilyBase(prefix=row["prefix"], base=int(row["base"]))
                    for row in rules.get("skill_family_base_values", [])
                ),
                finance_bands=tuple(
                    FinanceBand(
                        min_credit=int(row["min"]),
                        max_credit=int(row["max"]),
                        spending_level=row["spending_level"],
                    )
                    for row in rules.get("finance_bands", [])
                ),
                background_categories=_parse_background_categories(
                    rules.get("background_categories", [])
                ),
                eras=tuple(rules.get("eras", ["clasica"])),
                skills=tuple(skills["skills"]),
                occupations=tuple(
                    _parse_occupation(raw) for raw in occupations["occupations"]
                ),
            )
        except KeyError as exc:
            raise CatalogError(f"Rulebook data is missing key {exc}") from exc

    @classmethod
    def defaults(cls) -> RulebookCatalog:
        """Return the packaged rulebook, loaded once per process."""
        return _packaged_catalog()


def parse_credit_range(raw: str) -> tuple[int, int]:
    """Parse ``"9-30"`` into ``(9, 30)``."""
    parts = raw.split("-")
    if len(parts) != 2:
        raise CatalogError(f"Invalid credit range: {raw!r}")
    try:
        low, high = int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        raise CatalogError(f"Invalid credit range: {raw!r}") from None
    if low > high:
        raise CatalogError(f"Credit range is inverted: {raw!r}")
    return low, high


def _parse_background_categories(raw: list[str]) -> tuple[str, ...]:
    categories = tuple(raw)
    unknown = [name for name in categories if name not in _OPTIONAL_BACKGROUND_FIELDS]
    if unknown:
        raise CatalogError(f"Unknown background categories: {unknown}")
    return categories


def _parse_occupation(raw: dict[str, Any]) -> Occupation:
    credit_min, credit_max = parse_credit_range(raw["credit_range"])
    return Occupation(
        name=raw["name"],
        credit_min=credit_min,
        credit_max=credit_max,
        points_formula=raw["occupation_points_formula"],
        skills=tuple(raw.get("skills", [])),
        choice_groups=tuple(
            ChoiceGroup(
                count=int(group["count"]),
                candidates=tuple(group["from"]),
                label=group["label"],
            )
            for group in raw.get("choice_groups", [])
        ),
        tags=tuple(raw.get("tags", [])),
    )


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fp:
        return json.load(fp)


@lru_cache(maxsize=1)
def _packaged_catalog() -> RulebookCatalog:
    return RulebookCatalog.from_dir(DATA_DIR)
