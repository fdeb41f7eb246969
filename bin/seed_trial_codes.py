# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Provision trial activation codes.

Run after the initial migration:
    python bin/seed_trial_codes.py --expires 2027-12-31
    python bin/seed_trial_codes.py --expires 2027-06-30 PARTNER-001 PARTNER-002

Without explicit codes the five launch codes VOYAGEX-2024-001 … 005 are
inserted.  Existing codes are left untouched (their used flag included).
Afterwards every code in the table is listed with its state.
"""

import argparse
import os
import sys
from datetime import datetime, timezone

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_trial_codes.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from admin.store import TrialCodeStore    # noqa: E402
from database import SessionLocal         # noqa: E402

DEFAULT_CODES = [f"VOYAGEX-2024-{n:03d}" for n in range(1, 6)]


def _parse_date(value: str) -> datetime:
    """``YYYY-MM-DD`` → end of that day, UTC."""
    day = datetime.strptime(value, "%Y-%m-%d")
    return day.replace(hour=23, minute=59, second=59, tzinfo=timezone.utc)


def _state(trial) -> str:
    if trial.used:
        return f"used {trial.used_at:%Y-%m-%d}" if trial.used_at else "used"
    return "unused"


def seed(codes, expires_at):
    """Insert *codes* and return the whole table as ``(code, state, expires)`` rows."""
    db = SessionLocal()
    try:
        store = TrialCodeStore(db)
        for code in codes:
            if store.provision(code, expires_at):
                print(f"[seed_trial_codes] {code} created, expires {expires_at:%Y-%m-%d}.")
            else:
                print(f"[seed_trial_codes] {code} already exists – skipping.")
        db.commit()

        rows = [(t.code, _state(t), f"{t.expires_at:%Y-%m-%d}") for t in store.all()]
    finally:
        db.close()

    print(f"\n{'CODE':<24} {'STATE':<16} EXPIRES")
    for code, state, expires in rows:
        print(f"{code:<24} {state:<16} {expires}")
    return rows


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--expires", required=True, type=_parse_date, help="last valid day, YYYY-MM-DD (UTC)")
    parser.add_argument("codes", nargs="*", help="codes to create (default: the five VOYAGEX launch codes)")
    args = parser.parse_args(argv)
    seed(args.codes or DEFAULT_CODES, args.expires)


if __name__ == "__main__":
    main()
