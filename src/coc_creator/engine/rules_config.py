"""Configuration knobs for the rules engine.

Defaults match the 7th edition rulebook. House rules may relax the skill
caps, widen the playable age range, or downgrade the creation cap to a
warning.
"""

from dataclasses import dataclass

from coc_creator.models.constants import Severity


@dataclass(slots=True)
class RulesConfig:
    """Tuneable parameters that aren't part of the catalog data."""

    creation_skill_cap: int = 75      # Recommended max for a fresh investigator
    absolute_skill_cap: int = 99
    creation_cap_severity: Severity = "error"
    min_age: int = 15
    max_age: int = 89
    youth_penalty_total: int = 5      # FUE+TAM split at 15-19
    characteristic_min: int = 1
    characteristic_max: int = 99
    background_minimum: int = 3       # Categories out of six
    max_formula_combinations: int = 256

    def __post_init__(self) -> None:
        if self.creation_cap_severity not in ("error", "warning"):
            raise ValueError(
                f"creation_cap_severity must be 'error' or 'warning', "
                f"got {self.creation_cap_severity!r}"
            )
        if self.min_age > self.max_age:
            raise ValueError(f"min_age {self.min_age} is above max_age {self.max_age}")
