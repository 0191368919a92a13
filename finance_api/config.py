"""
config.py - Server Configuration

Everything comes from the process environment (optionally seeded from a
.env file). Required values are checked once at boot; a missing one is fatal.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

# ─────────────────────────────────────────────
# JWT CONFIG
# ─────────────────────────────────────────────
JWT_ALGORITHM  = "HS256"
JWT_EXPIRY_SEC = 3600      # 1 hour

# ─────────────────────────────────────────────
# SERVER
# ─────────────────────────────────────────────
SERVER_HOST = "api.dvoich.ru"
SERVER_PORT = 443
LOG_LEVEL   = "INFO"

# ─────────────────────────────────────────────
# TLS - Let's Encrypt material, read once at startup
# ─────────────────────────────────────────────
CERT_DIR  = "/etc/letsencrypt/live/api.dvoich.ru"
CERT_FILE = os.path.join(CERT_DIR, "fullchain.pem")
KEY_FILE  = os.path.join(CERT_DIR, "privkey.pem")

# ─────────────────────────────────────────────
# SECURITY / DATABASE PARAMS
# ─────────────────────────────────────────────
BCRYPT_ROUNDS        = 10
PG_POOL_MIN          = 1
PG_POOL_MAX          = 10
STATEMENT_TIMEOUT_MS = 30_000

REQUIRED_VARS = (
    "PG_USER",
    "PG_HOST",
    "PG_DATABASE",
    "PG_PASSWORD",
    "PG_PORT",
    "JWT_SECRET",
)


class ConfigError(RuntimeError):
    """Raised at boot when the environment or TLS material is unusable."""


@dataclass(frozen=True)
class Settings:
    pg_user: str
    pg_host: str
    pg_database: str
    pg_password: str
    pg_port: int
    jwt_secret: str
    server_host: str = SERVER_HOST
    server_port: int = SERVER_PORT
    cert_file: str = CERT_FILE
    key_file: str = KEY_FILE
    bcrypt_rounds: int = BCRYPT_ROUNDS
    jwt_expiry_sec: int = JWT_EXPIRY_SEC
    pool_min_size: int = PG_POOL_MIN
    pool_max_size: int = PG_POOL_MAX
    statement_timeout_ms: int = STATEMENT_TIMEOUT_MS
    log_level: str = LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_VARS if not env.get(name)]
        if missing:
            raise ConfigError(
                "Missing required environment variables: " + ", ".join(missing)
            )

        return cls(
            pg_user=env["PG_USER"],
            pg_host=env["PG_HOST"],
            pg_database=env["PG_DATABASE"],
            pg_password=env["PG_PASSWORD"],
            pg_port=_int(env, "PG_PORT", None),
            jwt_secret=env["JWT_SECRET"],
            server_host=env.get("API_HOST") or SERVER_HOST,
            server_port=_int(env, "API_PORT", SERVER_PORT),
            cert_file=env.get("TLS_CERT_FILE") or CERT_FILE,
            key_file=env.get("TLS_KEY_FILE") or KEY_FILE,
            bcrypt_rounds=_int(env, "BCRYPT_ROUNDS", BCRYPT_ROUNDS),
            jwt_expiry_sec=_int(env, "JWT_EXPIRY_SEC", JWT_EXPIRY_SEC),
            pool_min_size=_int(env, "PG_POOL_MIN", PG_POOL_MIN),
            pool_max_size=_int(env, "PG_POOL_MAX", PG_POOL_MAX),
            statement_timeout_ms=_int(env, "PG_STATEMENT_TIMEOUT_MS", STATEMENT_TIMEOUT_MS),
            log_level=(env.get("LOG_LEVEL") or LOG_LEVEL).upper(),
        )


def _int(env: Mapping[str, str], name: str, default: Optional[int]) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Seed os.environ from .env (existing variables win) and build Settings."""
    load_dotenv(dotenv_path)
    return Settings.from_env()
