"""Rules engine interfaces."""

from coc_creator.engine.finalize import CharacterSheet, FinalizationError, finalize_character
from coc_creator.engine.rules_config import RulesConfig
from coc_creator.engine.rules_engine import RulesEngine
from coc_creator.engine.validation import ValidationIssue, validate_step

__all__ = [
    "CharacterSheet",
    "FinalizationError",
    "RulesConfig",
    "RulesEngine",
    "ValidationIssue",
    "finalize_character",
    "validate_step",
]
