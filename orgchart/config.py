import os
from typing import Dict, List, Optional, Tuple

DEFAULT_COUNTER_KINDS = ("minister", "department", "citizen", "document")

ENV_FILE = os.path.join(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")), ".env")

_dotenv: Optional[Dict[str, str]] = None


def _read_dotenv(path: str) -> Dict[str, str]:
    """Parse KEY=value lines; blank lines, comments and quotes around values are ignored."""
    values: Dict[str, str] = {}
    if not os.path.isfile(path):
        return values
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#") or "=" not in s:
                continue
            key, val = s.split("=", 1)
            if key.strip():
                values[key.strip()] = val.strip().strip('"').strip("'")
    return values


def get_setting(name: str, default: str = "") -> str:
    """Process environment first, then the project's .env file, then `default`."""
    global _dotenv
    if os.getenv(name):
        return os.environ[name]
    if _dotenv is None:
        _dotenv = _read_dotenv(ENV_FILE)
    return _dotenv.get(name) or default


def require_settings(**defaults: str) -> Tuple[str, ...]:
    """Resolve several settings at once; raises RuntimeError naming every missing one."""
    values = tuple(get_setting(name, default) for name, default in defaults.items())
    missing = [name for name, value in zip(defaults, values) if not value]
    if missing:
        raise RuntimeError(
            "Missing settings: " + ", ".join(missing) +
            ". Define them in the environment or in a .env file at the project root."
        )
    return values


def get_store_backend() -> str:
    backend = get_setting("ENTITY_STORE_BACKEND", "http").strip().lower()
    if backend not in ("http", "neo4j", "memory"):
        raise RuntimeError(
            f"Unsupported ENTITY_STORE_BACKEND '{backend}'. Use one of: http, neo4j, memory."
        )
    return backend


def get_http_store_config() -> Tuple[str, str, float]:
    """Return (update_url, query_url, timeout) for the remote entity service."""
    update_url = get_setting("ENTITY_STORE_UPDATE_URL", "http://localhost:8080")
    query_url = get_setting("ENTITY_STORE_QUERY_URL", "http://localhost:8081")
    raw_timeout = get_setting("ENTITY_STORE_TIMEOUT", "30")
    try:
        timeout = float(raw_timeout)
    except ValueError as exc:
        raise RuntimeError(f"ENTITY_STORE_TIMEOUT must be a number of seconds, got '{raw_timeout}'") from exc
    return update_url.rstrip("/"), query_url.rstrip("/"), timeout


def get_neo4j_config() -> Tuple[str, str, str]:
    """Return (uri, user, password) for the neo4j backend."""
    return require_settings(NEO4J_URI="bolt://localhost:7687", NEO4J_USER="neo4j", NEO4J_PASSWORD="")


def get_counter_kinds() -> List[str]:
    raw = get_setting("ORGCHART_COUNTER_KINDS")
    if not raw:
        return list(DEFAULT_COUNTER_KINDS)
    return [k.strip() for k in raw.split(",") if k.strip()]


def parse_counters(raw: str) -> Dict[str, int]:
    """Parse 'minister=3,department=10' into a counter table."""
    out: Dict[str, int] = {}
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ValueError(f"Invalid counter entry '{part}', expected kind=value")
        kind, val = part.split("=", 1)
        try:
            out[kind.strip()] = int(val.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid counter value for {kind.strip()}: {val.strip()}") from exc
    return out


def get_log_level() -> str:
    return get_setting("ORGCHART_LOG_LEVEL", "INFO").upper()
