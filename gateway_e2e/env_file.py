"""Reader for the repository `.env` file.

Some suites (the error-tracking proxy tests in particular) need values such as
the project DSN key that live only in the workspace `.env` file and are not
exported into the test process environment. This module reads that file
without mutating `os.environ`.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"


@lru_cache(maxsize=8)
def _parse_env_file(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}

    values: Dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        if key.startswith("export "):
            key = key[len("export "):]
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        values[key.strip()] = value
    return values


def load_env_file(path: Optional[Path] = None) -> Dict[str, str]:
    """Return the key/value pairs of an env file (empty if it does not exist).

    Args:
        path: File to read, defaults to `.env` at the repository root

    Returns:
        A fresh dict; callers may mutate it freely.
    """
    return dict(_parse_env_file(Path(path) if path else DEFAULT_ENV_FILE))


def get_env_value(key: str, path: Optional[Path] = None) -> str | None:
    return _parse_env_file(Path(path) if path else DEFAULT_ENV_FILE).get(key)
