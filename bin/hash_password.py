# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Print a pbkdf2 hash for ADMIN_PASSWORD_HASH / TRIAL_ADMIN_PASSWORD_HASH.

    python bin/hash_password.py            # prompts, nothing lands in shell history
    python bin/hash_password.py 'secret'
"""

import getpass
import os
import sys

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from core.security import PasswordHasher   # noqa: E402


def main(argv):
    plain = argv[1] if len(argv) > 1 else getpass.getpass("Password: ")
    if not plain:
        print("[hash_password] empty password – nothing to do.")
        return 1
    print(PasswordHasher().hash(plain))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
