"""Parse and roll rulebook dice formulas.

Supported shapes (whitespace ignored, case-insensitive):
  - ``3D6``            N dice of S sides
  - ``(2D6+6)``        N dice of S sides plus a flat K
  - ``3D6x5``          either of the above times M
  - ``(2D6+6)x5``

Formulas are parsed once into an immutable DiceFormula; rolling never
re-parses. Every roll returns the individual dice alongside the total so the
caller can show how the number came about.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass


_DICE_RE = re.compile(
    r"^(?:\((\d+)D(\d+)\+(\d+)\)|(\d+)D(\d+))(?:X(\d+))?$",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")


class FormulaError(ValueError):
    """A formula string the engine does not know how to evaluate."""


@dataclass(frozen=True, slots=True)
class RollDetail:
    """Outcome of one DiceFormula.roll(), with the intermediate values."""

    formula: str
    rolls: tuple[int, ...]
    add: int
    multiplier: int
    subtotal: int   # sum(rolls) + add
    total: int      # subtotal * multiplier

    def describe(self, with_formula: bool = True) -> str:
        """Audit line such as ``3D6x5: [4, 2, 6] = 12 x5 => 60``."""
        dice = ", ".join(str(r) for r in self.rolls)
        text = f"{self.formula}: [{dice}]" if with_formula else f"[{dice}]"
        if self.add > 0:
            text += f" + {self.add}"
        text += f" = {self.subtotal}"
        if self.multiplier > 1:
            text += f" x{self.multiplier}"
        return f"{text} => {self.total}"


@dataclass(frozen=True, slots=True)
class DiceFormula:
    """A parsed ``(NdS+K)xM`` formula."""

    text: str
    times: int
    sides: int
    add: int = 0
    multiplier: int = 1

    @classmethod
    def parse(cls, formula: str) -> DiceFormula:
        """Parse *formula*, raising FormulaError if it isn't a supported shape."""
        clean = _WHITESPACE_RE.sub("", formula)
        match = _DICE_RE.match(clean)
        if match is None:
            raise FormulaError(f"Formula no soportada: {formula}")

        g_times, g_sides, g_add, p_times, p_sides, mult = match.groups()
        grouped = g_times is not None
        times = int(g_times if grouped else p_times)
        sides = int(g_sides if grouped else p_sides)
        if times < 1 or sides < 1:
            raise FormulaError(f"Formula no soportada: {formula}")

        return cls(
            text=clean.upper().replace("X", "x"),
            times=times,
            sides=sides,
            add=int(g_add) if grouped else 0,
            multiplier=int(mult) if mult else 1,
        )

    @property
    def minimum(self) -> int:
        return (self.times + self.add) * self.multiplier

    @property
    def maximum(self) -> int:
        return (self.times * self.sides + self.add) * self.multiplier

    def roll(self, rng: random.Random | None = None) -> RollDetail:
        """Roll every die first, then report the total and its breakdown."""
        rng = rng or _default_rng
        rolls = tuple(rng.randint(1, self.sides) for _ in range(self.times))
        subtotal = sum(rolls) + self.add
        return RollDetail(
            formula=self.text,
            rolls=rolls,
            add=self.add,
            multiplier=self.multiplier,
            subtotal=subtotal,
            total=subtotal * self.multiplier,
        )


def roll_formula(formula: str, rng: random.Random | None = None) -> RollDetail:
    """Parse and roll in one step, for ad-hoc formulas outside the catalog."""
    return DiceFormula.parse(formula).roll(rng)


def roll_die(sides: int, rng: random.Random | None = None) -> int:
    """Roll a single die with *sides* faces."""
    return (rng or _default_rng).randint(1, sides)


# Process-local source; callers inject a seeded Random for reproducible rolls.
_default_rng = random.Random()
