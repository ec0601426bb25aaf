"""Roll a complete sample investigator and print the finished sheet.

Walks the whole creation pipeline: characteristics with age rules →
occupation with default choices → best formula branches → a greedy skill
allocation → placeholder background and equipment → finalize.

Usage:
    python -m scripts.roll_investigator [--age N] [--occupation NAME] [--seed N] [--json]

With --seed the same investigator comes out every time.
"""

import argparse
import random
import sys

from coc_creator.engine import draft_ops
from coc_creator.engine.age_modifiers import default_allocation
from coc_creator.engine.finalize import FinalizationError
from coc_creator.engine.occupation import is_forbidden_skill, normalize_skill_name
from coc_creator.engine.rules_engine import RulesEngine
from coc_creator.engine.skills import is_credit_skill
from coc_creator.export.sheet_payload import SHEET_TITLE, printable_sections, sheet_to_json
from coc_creator.logging_config import configure_logging, get_logger
from coc_creator.models.character import CharacterDraft
from coc_creator.models.constants import CHARACTERISTIC_NAMES


logger = get_logger(__name__)

DEFAULT_OCCUPATION = "Investigador privado"
PLACEHOLDER = "Por completar"


def _allocate(
    draft: CharacterDraft,
    engine: RulesEngine,
    bucket: str,
    skills: list[str],
    budget: int,
) -> CharacterDraft:
    """Pour *budget* points into *skills* in order, never passing the creation cap."""
    cap = engine.config.creation_skill_cap
    remaining = budget
    for skill in skills:
        if remaining <= 0:
            break
        totals = {
            normalize_skill_name(name): value.total
            for name, value in engine.compute_skill_breakdown(draft.characteristics, draft.skills).items()
        }
        current = totals.get(normalize_skill_name(skill), 0)
        room = cap - current
        if room <= 0:
            continue
        points = min(room, remaining)
        already = getattr(draft.skills, bucket).get(skill, 0)
        draft = draft_ops.set_skill_points(draft, bucket, skill, already + points)
        remaining -= points
    return draft


def _spendable(skills: list[str]) -> list[str]:
    return [s for s in skills if not is_credit_skill(s) and not is_forbidden_skill(s)]


def build_investigator(engine: RulesEngine, age: int, occupation: str, era: str) -> CharacterDraft:
    """Produce a draft that passes every validation stage."""
    draft = draft_ops.new_draft(age=age)
    draft = draft_ops.set_era(draft, era, engine.catalog)
    allocation = default_allocation(age, engine.config.youth_penalty_total)
    draft = draft_ops.set_age_penalty_allocation(
        draft,
        youth_fue=allocation.youth_fue,
        youth_tam=allocation.youth_tam,
        mature_fue=allocation.mature_fue,
        mature_con=allocation.mature_con,
        mature_des=allocation.mature_des,
    )
    draft = engine.roll_all_characteristics(draft)
    draft = engine.select_occupation(draft, occupation)
    draft = draft_ops.apply_highest_formula_choices(draft, engine.catalog, engine.config)

    occupation_budget, personal_budget = engine.points_budgets(draft)
    allowed = _spendable(engine.collect_allowed_occupation_skills(draft.occupation))
    draft = _allocate(
        draft, engine, "occupation", allowed,
        occupation_budget - draft.occupation.credit_rating,
    )
    draft = _allocate(
        draft, engine, "personal", _spendable(list(engine.catalog.skills)),
        personal_budget,
    )

    for field in ("descripcion_personal", "ideologia_creencias", "rasgos", "vinculo_principal"):
        draft = draft_ops.set_background_field(draft, field, PLACEHOLDER)
    draft = draft_ops.apply_finance_defaults(draft, engine.catalog)
    draft = draft_ops.set_equipment_field(draft, "cash", PLACEHOLDER)
    draft = draft_ops.set_equipment_field(draft, "assets", PLACEHOLDER)
    draft = draft_ops.set_equipment_field(draft, "notes", PLACEHOLDER)
    return draft


def main():
    parser = argparse.ArgumentParser(description="Roll a sample investigator")
    parser.add_argument("--age", type=int, default=25, help="Investigator age (15-89)")
    parser.add_argument("--occupation", default=DEFAULT_OCCUPATION,
                        help="Exact occupation name from the catalog")
    parser.add_argument("--era", default="clasica", help="clasica or actual")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for reproducible rolls")
    parser.add_argument("--json", action="store_true", help="Print the sheet as JSON")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    configure_logging(args.log_level)
    engine = RulesEngine.defaults(rng=random.Random(args.seed))

    if args.era not in engine.catalog.eras:
        parser.error(f"unknown era {args.era!r}; choose one of: " + ", ".join(engine.catalog.eras))
    available = [occ.name for occ in engine.catalog.occupations_for_era(args.era)]
    if args.occupation not in available:
        parser.error(
            f"unknown occupation {args.occupation!r} for era {args.era!r}; choose one of: "
            + ", ".join(available)
        )

    draft = build_investigator(engine, args.age, args.occupation, args.era)
    for issue in engine.validate_step(10, draft):
        logger.warning("Validation issue", code=issue.code, message=issue.message)

    try:
        sheet = engine.finalize_character(draft)
    except FinalizationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(sheet_to_json(sheet))
        return

    print(f"\n{'='*50}")
    print(f"  {SHEET_TITLE}")
    print(f"  {sheet.occupation.name}, {sheet.age} anos")
    print(f"{'='*50}")

    print("\n--- CARACTERISTICAS ---")
    for key, value in sheet.characteristics.items():
        name = CHARACTERISTIC_NAMES[key]
        hard = sheet.derived_stats.hard[key]
        extreme = sheet.derived_stats.extreme[key]
        print(f"  {name:<14} {value:>3}  ({hard}/{extreme})")

    print("\n--- HABILIDADES ---")
    for name, value in sheet.computed_skills.items():
        if value.occupation or value.personal:
            print(f"  {name:<36} {value.total:>3}  (base {value.base})")

    print("\n--- RESUMEN ---")
    for label, value in printable_sections(sheet):
        if label in ("Habilidades (totales)", "Caracteristicas"):
            continue
        print(f"  {label:<16} {value}")

    print()


if __name__ == "__main__":
    main()
