"""Evaluate occupation point-budget formulas.

Grammar (after upper-casing and removing whitespace):

    expr    := term ('+' term)*
    term    := '(' expr ')' | branch | CHAR 'X' DIGITS | CHAR
    branch  := term ('O' term)+        -- "choose one"

``O`` is both a letter (CON, POD) and the "or" operator, so a top-level ``O``
only splits when it sits at a token boundary: a digit or ``)`` before and a
letter or ``(`` after, or a letter before and ``(`` after. Anything that
doesn't parse evaluates to 0 instead of raising; a bad formula must not take
down the whole budget screen.

Choice groups are the parenthesised top-level groups that contain a branch.
They are keyed ``choice_0``, ``choice_1``... in order of appearance, per
formula.
"""

from __future__ import annotations

import itertools
import re
from collections.abc import Mapping
from dataclasses import dataclass

from coc_creator.models.constants import (
    CHARACTERISTIC_KEY_SET,
    FORMULA_CHOICE_KEY_PREFIX,
)
from coc_creator.parser.dice_formula import FormulaError


_WHITESPACE_RE = re.compile(r"\s+")
_MULTIPLIER_RE = re.compile(r"^([A-Z]+)X(\d+)$")

# Upper bound on combinations explored by pick_highest_choices()
DEFAULT_MAX_COMBINATIONS = 256


@dataclass(frozen=True, slots=True)
class FormulaChoiceGroup:
    """One "A or B" alternative inside a point formula."""

    key: str
    options: tuple[str, ...]


def normalize_formula(formula: str) -> str:
    return _WHITESPACE_RE.sub("", formula.upper())


def format_option(option: str) -> str:
    """Render a normalised option for humans: ``DESX2`` -> ``DES x 2``."""
    return option.replace("X", " x ")


# ---------------------------------------------------------------------------
# Tokenizer helpers
# ---------------------------------------------------------------------------


def strip_outer_parentheses(token: str) -> str:
    """Remove parentheses that wrap the *whole* token, repeatedly."""
    value = token
    while value.startswith("(") and value.endswith(")"):
        depth = 0
        wraps_all = True
        for i, char in enumerate(value):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            if depth == 0 and i < len(value) - 1:
                wraps_all = False
                break
        if not wraps_all:
            break
        value = value[1:-1]
    return value


def _is_branch_boundary(prev: str, nxt: str) -> bool:
    if (prev.isdigit() or prev == ")") and (_is_upper_letter(nxt) or nxt == "("):
        return True
    return _is_upper_letter(prev) and nxt == "("


def _is_upper_letter(char: str) -> bool:
    return len(char) == 1 and "A" <= char <= "Z"


def split_top_level(token: str, separator: str) -> list[str]:
    """Split *token* on *separator* outside parentheses, dropping empty parts.

    For ``"O"`` only boundary positions split; an ``O`` inside a word such as
    ``CON`` stays part of the token.
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []

    for i, char in enumerate(token):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and char == separator:
            if separator == "O":
                prev = token[i - 1] if i > 0 else ""
                nxt = token[i + 1] if i + 1 < len(token) else ""
                if not _is_branch_boundary(prev, nxt):
                    current.append(char)
                    continue
            parts.append("".join(current))
            current = []
            continue
        current.append(char)

    parts.append("".join(current))
    return [part for part in parts if part]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_choice_groups(formula: str) -> list[FormulaChoiceGroup]:
    """List the branch groups of *formula* in order of first appearance."""
    normalized = normalize_formula(formula)
    groups: list[FormulaChoiceGroup] = []

    depth = 0
    group_start = -1
    for i, char in enumerate(normalized):
        if char == "(":
            if depth == 0:
                group_start = i
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and group_start >= 0:
                options = split_top_level(normalized[group_start + 1:i], "O")
                if len(options) > 1:
                    groups.append(FormulaChoiceGroup(
                        key=f"{FORMULA_CHOICE_KEY_PREFIX}{len(groups)}",
                        options=tuple(options),
                    ))
                group_start = -1

    return groups


def selected_option(
    group_key: str,
    options: tuple[str, ...] | list[str],
    formula_choices: Mapping[str, str] | None,
) -> str:
    """Return the stored branch for *group_key* if it is a literal option, else the first."""
    stored = normalize_formula((formula_choices or {}).get(group_key, ""))
    if stored and stored in options:
        return stored
    return options[0]


def is_choice_resolved(
    group: FormulaChoiceGroup,
    formula_choices: Mapping[str, str] | None,
) -> bool:
    stored = normalize_formula((formula_choices or {}).get(group.key, ""))
    return stored in group.options


def evaluate_points_formula(
    formula: str,
    characteristics: Mapping[str, int],
    formula_choices: Mapping[str, str] | None = None,
) -> int:
    """Evaluate an occupation point formula against *characteristics*.

    Branches use the caller's stored choice when it names one of the group's
    options, else the first option.
    """
    normalized = normalize_formula(formula)
    groups = extract_choice_groups(formula)
    next_group = 0

    def evaluate(token: str) -> int:
        nonlocal next_group
        cleaned = strip_outer_parentheses(token)

        plus_parts = split_top_level(cleaned, "+")
        if len(plus_parts) > 1:
            return sum(evaluate(part) for part in plus_parts)

        branch_parts = split_top_level(cleaned, "O")
        if len(branch_parts) > 1:
            group = groups[next_group] if next_group < len(groups) else None
            next_group += 1
            key = group.key if group is not None else ""
            return evaluate(selected_option(key, branch_parts, formula_choices))

        match = _MULTIPLIER_RE.match(cleaned)
        if match:
            stat, mult = match.group(1), int(match.group(2))
            if stat in CHARACTERISTIC_KEY_SET:
                return int(characteristics.get(stat, 0)) * mult
            return 0

        if cleaned in CHARACTERISTIC_KEY_SET:
            return int(characteristics.get(cleaned, 0))

        return 0

    return evaluate(normalized)


def pick_highest_choices(
    formula: str,
    characteristics: Mapping[str, int],
    *,
    max_combinations: int = DEFAULT_MAX_COMBINATIONS,
) -> dict[str, str]:
    """Return the branch combination giving the largest budget.

    Exhaustive over every group; ties keep the earliest combination. Meant
    for pre-filling defaults, never for overriding an explicit choice.
    """
    groups = extract_choice_groups(formula)
    if not groups:
        return {}

    combinations = 1
    for group in groups:
        combinations *= len(group.options)
    if combinations > max_combinations:
        raise FormulaError(
            f"Formula {formula!r} has {combinations} branch combinations "
            f"(limit {max_combinations})"
        )

    best_points: int | None = None
    best: dict[str, str] = {}
    for combo in itertools.product(*(group.options for group in groups)):
        choices = {group.key: option for group, option in zip(groups, combo)}
        points = evaluate_points_formula(formula, characteristics, choices)
        if best_points is None or points > best_points:
            best_points = points
            best = choices
    return best


def first_option_choices(formula: str) -> dict[str, str]:
    """Default branch choices: the first option of every group."""
    return {group.key: group.options[0] for group in extract_choice_groups(formula)}
