import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .logging import get_logger
from .paths import default_data_dir, expand_abs, find_project_root

log = get_logger("config")

STORAGE_SQLITE = "sqlite"
STORAGE_JSON = "json"
STORAGE_CHOICES = (STORAGE_SQLITE, STORAGE_JSON)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running the server from subdirectories still find the
    repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Minimal .env reader.

    - Reads key=value pairs, ignores comments (#/;) and blank lines.
    - Trims single/double quotes around the value.
    - Returns mapping; does not mutate environment.
    """
    env: Dict[str, str] = {}
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return env
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("#") or line.startswith(";"):
                    continue
                if "=" not in line:
                    continue
                k, v = line.split("=", 1)
                k = k.strip()
                v = v.strip()
                if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                    v = v[1:-1]
                env[k] = v.strip()
        log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    except OSError as e:
        log.warning(f"Failed reading .env: {e}")
    return env


def _lookup(key: str, env: Dict[str, str]) -> Optional[str]:
    v = os.environ.get(key)
    if v is None:
        v = env.get(key)
    if v is None:
        return None
    v = v.strip()
    return v or None


@dataclass
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    storage: str = STORAGE_SQLITE
    data_dir: str = ""
    project_root: str = ""
    allow_origins: List[str] = field(default_factory=lambda: ["*"])


def load_settings(start_dir: Optional[str] = None) -> Settings:
    """Resolve settings from the environment first, then `.env`, then defaults."""
    start = start_dir or os.getcwd()
    env = _read_dotenv(start)
    root = find_project_root(start)

    port_raw = _lookup("PORT", env)
    try:
        port = int(port_raw) if port_raw else DEFAULT_PORT
    except ValueError:
        log.warning(f"Ignoring invalid PORT value: {port_raw!r}")
        port = DEFAULT_PORT

    storage = (_lookup("STOCKROOM_STORAGE", env) or STORAGE_SQLITE).lower()
    if storage not in STORAGE_CHOICES:
        log.warning(f"Unknown STOCKROOM_STORAGE {storage!r}; falling back to {STORAGE_SQLITE}")
        storage = STORAGE_SQLITE

    data_dir_raw = _lookup("STOCKROOM_DATA_DIR", env)
    data_dir = expand_abs(data_dir_raw) if data_dir_raw else default_data_dir(root)

    origins_raw = _lookup("STOCKROOM_ALLOW_ORIGINS", env)
    origins = [o.strip() for o in origins_raw.split(",") if o.strip()] if origins_raw else ["*"]

    return Settings(
        host=_lookup("HOST", env) or DEFAULT_HOST,
        port=port,
        storage=storage,
        data_dir=data_dir,
        project_root=root,
        allow_origins=origins,
    )
