"""Investigator draft data model.

Represents everything the player decides while walking the creation wizard:
age and the age-penalty split, rolled characteristics, the chosen occupation
with its choice-group picks, skill points, and the free-text sheet sections
(identity, companions, background, equipment). This is the input to every
engine function; none of them mutate it. The text sections are
frozen; draft_ops swaps in replacements.
"""

import math
from dataclasses import dataclass, field

from coc_creator.models.constants import CHARACTERISTIC_KEYS


Characteristics = dict[str, int]


class MissingCharacteristicsError(ValueError):
    """A derived computation was asked for before all nine values exist."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing characteristics: {', '.join(missing)}")


def missing_characteristics(characteristics: Characteristics) -> list[str]:
    """Return the keys not yet rolled, in sheet order."""
    return [key for key in CHARACTERISTIC_KEYS if key not in characteristics]


def require_characteristics(characteristics: Characteristics) -> None:
    """Raise MissingCharacteristicsError unless all nine keys are present."""
    missing = missing_characteristics(characteristics)
    if missing:
        raise MissingCharacteristicsError(missing)


def clamp_penalty(value: float) -> int:
    """Penalty splits are whole, non-negative points."""
    if not math.isfinite(value):
        return 0
    return max(0, math.floor(value))


@dataclass(frozen=True, slots=True)
class AgePenaltyAllocation:
    """How the player spreads age penalties.

    The youth pair applies at 15-19, the mature triple from 40 up. The
    defaults are the even split for a 40-year-old.
    """

    youth_fue: int = 2
    youth_tam: int = 3
    mature_fue: int = 1
    mature_con: int = 1
    mature_des: int = 3

    @property
    def youth_total(self) -> int:
        return clamp_penalty(self.youth_fue) + clamp_penalty(self.youth_tam)

    @property
    def mature_total(self) -> int:
        return (
            clamp_penalty(self.mature_fue)
            + clamp_penalty(self.mature_con)
            + clamp_penalty(self.mature_des)
        )


@dataclass(frozen=True, slots=True)
class ChoiceGroupRef:
    """Identifies one "pick N" group of one occupation."""

    occupation_name: str
    group_index: int


@dataclass(slots=True)
class OccupationSelection:
    """The occupation picked in the draft and everything chosen inside it."""

    name: str
    credit_rating: int = 0
    # Group → chosen skill names, in the order the player picked them
    selected_choices: dict[ChoiceGroupRef, list[str]] = field(default_factory=dict)
    # "choice_N" → normalised branch text such as "DESX2"
    formula_choices: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class SkillAllocation:
    """Points assigned per skill, split by budget."""

    occupation: dict[str, int] = field(default_factory=dict)
    personal: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Background:
    descripcion_personal: str = ""
    ideologia_creencias: str = ""
    allegados: str = ""
    lugares_significativos: str = ""
    posesiones_preciadas: str = ""
    rasgos: str = ""
    # The bond that keeps the investigator going; mandatory
    vinculo_principal: str = ""


BACKGROUND_FIELDS: tuple[str, ...] = (
    "descripcion_personal",
    "ideologia_creencias",
    "allegados",
    "lugares_significativos",
    "posesiones_preciadas",
    "rasgos",
    "vinculo_principal",
)


@dataclass(frozen=True, slots=True)
class Identity:
    nombre: str = ""
    genero: str = ""
    residencia_actual: str = ""
    lugar_nacimiento: str = ""
    retrato_url: str = ""


IDENTITY_FIELDS: tuple[str, ...] = (
    "nombre",
    "genero",
    "residencia_actual",
    "lugar_nacimiento",
    "retrato_url",
)


@dataclass(frozen=True, slots=True)
class Companion:
    """Another investigator of the same group the character already knows."""

    personaje: str = ""
    jugador: str = ""
    resumen: str = ""


@dataclass(frozen=True, slots=True)
class Equipment:
    spending_level: str = ""
    cash: str = ""
    assets: str = ""
    items: tuple[str, ...] = ()
    notes: str = ""


EQUIPMENT_TEXT_FIELDS: tuple[str, ...] = ("spending_level", "cash", "assets", "notes")


@dataclass(slots=True)
class CharacterDraft:
    """An investigator in progress.

    Engine functions read drafts and draft_ops returns modified copies; the
    caller keeps whichever version it wants.
    """

    mode: str = "random"
    age: int = 25
    # Age the current characteristics were rolled for; None until rolled
    last_rolled_age: int | None = None
    era: str = "clasica"
    age_penalty_allocation: AgePenaltyAllocation = field(default_factory=AgePenaltyAllocation)

    # Partial until every key has been rolled
    characteristics: Characteristics = field(default_factory=dict)

    occupation: OccupationSelection | None = None
    skills: SkillAllocation = field(default_factory=SkillAllocation)

    background: Background = field(default_factory=Background)
    identity: Identity = field(default_factory=Identity)
    companions: list[Companion] = field(default_factory=list)
    equipment: Equipment = field(default_factory=Equipment)
