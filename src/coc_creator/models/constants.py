"""Characteristics, wizard stages, and fixed age tables.

Values here are rulebook-defined and not moddable. Anything a Guardian may
reasonably tune (caps, age range) lives in RulesConfig instead; anything that
is catalog content (occupations, skills, base values) lives in the JSON
reference data.
"""

from enum import Enum, IntEnum
from typing import Literal


class Characteristic(str, Enum):
    """The nine core characteristics, keyed by their rulebook abbreviation."""
    FUE = "FUE"         # Fuerza
    CON = "CON"         # Constitucion
    TAM = "TAM"         # Tamano
    DES = "DES"         # Destreza
    APA = "APA"         # Apariencia
    INT = "INT"         # Inteligencia
    POD = "POD"         # Poder
    EDU = "EDU"         # Educacion
    SUERTE = "SUERTE"   # Suerte


# Ordered as printed on the investigator sheet
CHARACTERISTIC_KEYS: tuple[str, ...] = tuple(c.value for c in Characteristic)
CHARACTERISTIC_KEY_SET = frozenset(CHARACTERISTIC_KEYS)

CHARACTERISTIC_NAMES: dict[str, str] = {
    "FUE": "Fuerza",
    "CON": "Constitucion",
    "TAM": "Tamano",
    "DES": "Destreza",
    "APA": "Apariencia",
    "INT": "Inteligencia",
    "POD": "Poder",
    "EDU": "Educacion",
    "SUERTE": "Suerte",
}


class WizardStage(IntEnum):
    """Creation wizard stages. Validation at stage N includes every stage <= N."""
    AGE = 1
    CHARACTERISTICS = 2
    DERIVED_STATS = 3
    OCCUPATION = 4
    OCCUPATION_CHOICES = 5
    SKILLS = 6
    IDENTITY = 7
    COMPANIONS = 8
    BACKGROUND = 9
    EQUIPMENT = 10


FIRST_STAGE = WizardStage.AGE
FINAL_STAGE = WizardStage.EQUIPMENT

Severity = Literal["error", "warning"]


# ---------------------------------------------------------------------------
# Age tables: (minimum age, value), checked from the oldest band down
# ---------------------------------------------------------------------------

YOUTH_MIN_AGE = 15
YOUTH_MAX_AGE = 19
YOUTH_EDU_PENALTY = 5

# Points the player splits between FUE/CON/DES
MATURE_PENALTY_TOTAL_BY_AGE: tuple[tuple[int, int], ...] = (
    (80, 80),
    (70, 40),
    (60, 20),
    (50, 10),
    (40, 5),
)

# Fixed APA loss, not part of the player's split
APPEARANCE_PENALTY_BY_AGE: tuple[tuple[int, int], ...] = (
    (80, 25),
    (70, 20),
    (60, 15),
    (50, 10),
    (40, 5),
)

EDU_IMPROVEMENT_ROLLS_BY_AGE: tuple[tuple[int, int], ...] = (
    (60, 4),
    (50, 3),
    (40, 2),
    (20, 1),
)

MOV_PENALTY_BY_AGE: tuple[tuple[int, int], ...] = (
    (80, 5),
    (70, 4),
    (60, 3),
    (50, 2),
    (40, 1),
)

EDU_IMPROVEMENT_DIE = "1D10"
EDU_CHECK_DIE = "1D100"


def lookup_age_table(table: tuple[tuple[int, int], ...], age: int) -> int:
    """Return the value of the first band whose minimum age is <= *age*, else 0."""
    for min_age, value in table:
        if age >= min_age:
            return value
    return 0


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------

# Families whose bare name ("Combatir") stands for any specialization
SPECIALIZABLE_SKILL_FAMILIES: tuple[str, ...] = (
    "armas de fuego",
    "arte/artesania",
    "ciencia",
    "combatir",
    "lengua propia",
    "otras lenguas",
    "pilotar",
    "supervivencia",
)

# Markers that turn an occupation entry into "any skill"
ANY_SKILL_MARKERS: tuple[str, ...] = ("cualquiera", "especialidades")

CREDIT_SKILL = "credito"
OWN_LANGUAGE_SKILL = "lengua propia"
DODGE_SKILL = "esquivar"

FORMULA_CHOICE_KEY_PREFIX = "choice_"
