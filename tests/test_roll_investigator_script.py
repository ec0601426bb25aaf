import json
import random
import sys

import pytest
from structlog.testing import capture_logs

from coc_creator.engine.rules_engine import RulesEngine
from coc_creator.engine.validation import has_errors
from scripts import roll_investigator
from scripts.roll_investigator import build_investigator


def _engine(seed: int) -> RulesEngine:
    return RulesEngine.defaults(rng=random.Random(seed))


@pytest.mark.parametrize("age", [17, 25, 35, 47, 63, 82])
def test_built_investigator_validates(age):
    engine = _engine(age)
    draft = build_investigator(engine, age, "Investigador privado", "clasica")
    assert not has_errors(engine.validate_step(10, draft))
    sheet = engine.finalize_character(draft)
    assert sheet.age == age


@pytest.mark.parametrize("name", ["Abogado", "Agente de policia"])
def test_other_occupations(name):
    engine = _engine(7)
    draft = build_investigator(engine, 30, name, "actual")
    assert draft.era == "actual"
    assert not has_errors(engine.validate_step(10, draft))


def test_skills_respect_creation_cap():
    engine = _engine(3)
    draft = build_investigator(engine, 30, "Investigador privado", "clasica")
    breakdown = engine.compute_skill_breakdown(draft.characteristics, draft.skills)
    assert all(
        value.total <= engine.config.creation_skill_cap
        for value in breakdown.values()
        if value.occupation or value.personal
    )


def test_main_json_is_reproducible(monkeypatch, capsys):
    monkeypatch.setattr(roll_investigator, "configure_logging", lambda *a, **k: None)
    argv = ["roll_investigator", "--age", "35", "--seed", "12", "--json"]

    monkeypatch.setattr(sys, "argv", argv)
    with capture_logs() as logs:
        roll_investigator.main()
    first = capsys.readouterr().out

    monkeypatch.setattr(sys, "argv", argv)
    with capture_logs():
        roll_investigator.main()
    second = capsys.readouterr().out

    assert any(entry["event"] == "Finalized investigator" for entry in logs)
    assert first == second
    payload = json.loads(first)
    assert payload["age"] == 35
    assert payload["occupation"]["name"] == "Investigador privado"


def test_main_text_output(monkeypatch, capsys):
    monkeypatch.setattr(roll_investigator, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr(sys, "argv", ["roll_investigator", "--seed", "4"])
    with capture_logs():
        roll_investigator.main()
    out = capsys.readouterr().out
    assert "CARACTERISTICAS" in out
    assert "Investigador privado, 25 anos" in out


def test_main_unknown_occupation(monkeypatch):
    monkeypatch.setattr(roll_investigator, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr(sys, "argv", ["roll_investigator", "--occupation", "Astronauta"])
    with pytest.raises(SystemExit):
        roll_investigator.main()
