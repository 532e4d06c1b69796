# config.py
# Settings are read from the environment once per process and passed into the
# handler. The Functions host fills the environment from app settings (or
# local.settings.json when running under `func start`).
#
# Cosmos env:
#   - COSMOS_ENDPOINT, COSMOS_DATABASE, COSMOS_CONTAINER (required)
#   - COSMOS_KEY (optional; DefaultAzureCredential when absent)
#   - COSMOS_TIMEOUT_SECONDS (default 10)
#
# Auth env (pick one):
#   - AUTH_JWKS_URL (RS256 against the identity authority's published keys), or
#   - JWT_SECRET_KEY (HS256 shared secret)
#   plus optional AUTH_ISSUER, AUTH_AUDIENCE, AUTH_TIMEOUT_SECONDS, AUTH_LEEWAY_SECONDS

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_ALLOWED_ORIGINS = frozenset(
    {"http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:4280"}
)


_ENV_LINE = re.compile(r"^\s*(?P<key>[A-Za-z_]\w*)\s*[=:]\s*(?P<value>.*?)\s*$")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def load_local_env_file(env_path: str) -> None:
    """Copy KEY=value lines from a dev .env file into os.environ.

    Existing variables win; a missing file is ignored.
    """
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        return

    for line in lines:
        m = _ENV_LINE.match(line)
        if m is None or m.group("key") in os.environ:
            continue
        os.environ[m.group("key")] = _unquote(m.group("value"))


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = (env.get(name) or "").strip()
    return value or None


def _required(env: Mapping[str, str], name: str) -> str:
    value = _get(env, name)
    if not value:
        raise ConfigurationError(f"Missing required env var: {name}")
    return value


def _seconds(env: Mapping[str, str], name: str, default: float, allow_zero: bool = False) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number of seconds") from None
    if value < 0 or (value == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise ConfigurationError(f"{name} must be {bound}")
    return value


def _origins(env: Mapping[str, str]) -> frozenset:
    raw = _get(env, "CORS_ALLOWED_ORIGINS")
    if not raw:
        return DEFAULT_ALLOWED_ORIGINS
    return frozenset(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    cosmos_endpoint: str
    cosmos_database: str
    cosmos_container: str
    cosmos_key: Optional[str] = None
    cosmos_timeout: float = 10.0

    jwks_url: Optional[str] = None
    jwt_secret: Optional[str] = None
    issuer: Optional[str] = None
    audience: Optional[str] = None
    auth_timeout: float = 5.0
    auth_leeway: float = 30.0

    allowed_origins: frozenset = DEFAULT_ALLOWED_ORIGINS

    def __repr__(self) -> str:
        # keep secrets out of logs and tracebacks
        return (
            f"Settings(cosmos_endpoint={self.cosmos_endpoint!r}, "
            f"cosmos_database={self.cosmos_database!r}, "
            f"cosmos_container={self.cosmos_container!r}, "
            f"auth_mode={self.auth_mode!r})"
        )

    @property
    def auth_mode(self) -> str:
        return "jwks" if self.jwks_url else "shared-secret"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env

        jwks_url = _get(env, "AUTH_JWKS_URL")
        jwt_secret = _get(env, "JWT_SECRET_KEY")
        if not jwks_url and not jwt_secret:
            raise ConfigurationError("Missing token validation config: set AUTH_JWKS_URL or JWT_SECRET_KEY")

        return cls(
            cosmos_endpoint=_required(env, "COSMOS_ENDPOINT"),
            cosmos_database=_required(env, "COSMOS_DATABASE"),
            cosmos_container=_required(env, "COSMOS_CONTAINER"),
            cosmos_key=_get(env, "COSMOS_KEY"),
            cosmos_timeout=_seconds(env, "COSMOS_TIMEOUT_SECONDS", 10.0),
            jwks_url=jwks_url,
            jwt_secret=jwt_secret,
            issuer=_get(env, "AUTH_ISSUER"),
            audience=_get(env, "AUTH_AUDIENCE"),
            auth_timeout=_seconds(env, "AUTH_TIMEOUT_SECONDS", 5.0),
            auth_leeway=_seconds(env, "AUTH_LEEWAY_SECONDS", 30.0, allow_zero=True),
            allowed_origins=_origins(env),
        )
