"""bin/seed_trial_codes.py: provisioning and the state listing."""

import importlib.util
from datetime import timedelta
from pathlib import Path

import pytest

from admin.store import TrialCodeStore
from database import SessionLocal

_SCRIPT = Path(__file__).resolve().parent.parent / "bin" / "seed_trial_codes.py"


@pytest.fixture()
def seeder():
    spec = importlib.util.spec_from_file_location("seed_trial_codes", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _claim(code, at):
    db = SessionLocal()
    try:
        TrialCodeStore(db).claim(code, at)
        db.commit()
    finally:
        db.close()


def test_seed_lists_every_code_with_its_state(seeder, clock, capsys):
    expires_at = seeder._parse_date("2027-12-31")
    seeder.seed(["PARTNER-001", "PARTNER-002"], expires_at)
    _claim("PARTNER-001", clock.now())

    rows = seeder.seed(["PARTNER-002", "PARTNER-003"], expires_at + timedelta(days=1))

    assert rows == [
        ("PARTNER-001", f"used {clock.now():%Y-%m-%d}", "2027-12-31"),
        ("PARTNER-002", "unused", "2027-12-31"),
        ("PARTNER-003", "unused", "2028-01-01"),
    ]
    out = capsys.readouterr().out
    assert "PARTNER-002 already exists" in out
    assert "PARTNER-003 created, expires 2028-01-01." in out


def test_main_seeds_the_launch_codes_by_default(seeder):
    seeder.main(["--expires", "2027-06-30"])

    db = SessionLocal()
    try:
        codes = [t.code for t in TrialCodeStore(db).all()]
    finally:
        db.close()
    assert codes == [f"VOYAGEX-2024-{n:03d}" for n in range(1, 6)]
