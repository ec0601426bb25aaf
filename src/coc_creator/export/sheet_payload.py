"""Export a finished CharacterSheet as JSON or as printable sections."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

from coc_creator.engine.finalize import CharacterSheet, SheetOccupation
from coc_creator.models.derived_stats import DerivedStats


SHEET_TITLE = "Hoja de Investigador - La Llamada de Cthulhu 7e"


def _derived_payload(stats: DerivedStats) -> dict[str, Any]:
    return {
        "cor": stats.cor,
        "pm": stats.pm,
        "pv": stats.pv,
        "mov": stats.mov,
        "build": stats.build,
        "damage_bonus": stats.damage_bonus,
        "hard": dict(stats.hard),
        "extreme": dict(stats.extreme),
    }


def _occupation_payload(selection: SheetOccupation) -> dict[str, Any]:
    return {
        "name": selection.name,
        "credit_rating": int(selection.credit_rating),
        "selected_choices": [
            {
                "occupation": ref.occupation_name,
                "group_index": int(ref.group_index),
                "skills": list(skills),
            }
            for ref, skills in sorted(
                selection.selected_choices.items(),
                key=lambda item: (item[0].occupation_name, item[0].group_index),
            )
        ],
        "formula_choices": dict(selection.formula_choices),
    }


def sheet_to_payload(sheet: CharacterSheet) -> dict[str, Any]:
    """Plain JSON-safe dict of the whole sheet."""
    return {
        "mode": sheet.mode,
        "age": int(sheet.age),
        "era": sheet.era,
        "characteristics": {key: int(value) for key, value in sheet.characteristics.items()},
        "derived_stats": _derived_payload(sheet.derived_stats),
        "occupation": _occupation_payload(sheet.occupation),
        "skills": {
            "occupation": dict(sheet.skills.occupation),
            "personal": dict(sheet.skills.personal),
        },
        "computed_skills": {
            name: asdict(value) for name, value in sheet.computed_skills.items()
        },
        "background": asdict(sheet.background),
        "identity": asdict(sheet.identity),
        "companions": [asdict(companion) for companion in sheet.companions],
        "equipment": {**asdict(sheet.equipment), "items": list(sheet.equipment.items)},
    }


def sheet_to_json(sheet: CharacterSheet) -> str:
    """Deterministic JSON: the same sheet always yields the same bytes."""
    return json.dumps(sheet_to_payload(sheet), indent=2, sort_keys=True, ensure_ascii=False)


def _joined(parts: list[str], empty: str = "") -> str:
    text = " | ".join(part for part in parts if part)
    return text or empty


def printable_sections(sheet: CharacterSheet) -> list[tuple[str, str]]:
    """(label, value) rows for a one-page summary of the sheet."""
    identity = sheet.identity
    derived = sheet.derived_stats
    equipment = sheet.equipment
    return [
        ("Identidad", _joined([
            identity.nombre and f"Nombre: {identity.nombre}",
            identity.genero and f"Genero: {identity.genero}",
            identity.residencia_actual and f"Residencia: {identity.residencia_actual}",
            identity.lugar_nacimiento and f"Nacimiento: {identity.lugar_nacimiento}",
        ])),
        ("Edad", str(sheet.age)),
        ("Modo", sheet.mode),
        ("Ocupacion", sheet.occupation.name),
        ("Credito", str(sheet.occupation.credit_rating)),
        ("PV", str(derived.pv)),
        ("PM", str(derived.pm)),
        ("MOV", str(derived.mov)),
        ("DB", derived.damage_bonus),
        ("Corpulencia", str(derived.build)),
        ("Caracteristicas", ", ".join(
            f"{key}: {value}" for key, value in sheet.characteristics.items()
        )),
        ("Habilidades (totales)", _joined([
            f"{name}: {value.total} ({value.hard}/{value.extreme})"
            for name, value in sheet.computed_skills.items()
            if value.total > 0
        ])),
        ("Trasfondo", _joined(list(asdict(sheet.background).values()))),
        ("Finanzas", _joined([
            equipment.spending_level and f"Nivel de gasto: {equipment.spending_level}",
            equipment.cash and f"Efectivo: {equipment.cash}",
            equipment.assets and f"Propiedades: {equipment.assets}",
        ])),
        ("Companeros", _joined(
            [
                " - ".join(part for part in (c.personaje, c.jugador, c.resumen) if part)
                for c in sheet.companions
            ],
            empty="Sin companeros anotados",
        )),
        ("Equipo", equipment.notes or "Sin notas"),
    ]
