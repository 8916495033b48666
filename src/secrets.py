from __future__ import annotations
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from google.cloud import secretmanager


_REPO_ROOT = Path(__file__).resolve().parents[1]
_SECRETS_DIR = _REPO_ROOT / "secrets"


def setup_secrets(env: str) -> dict[str, Path]:
    """
    Materialize env-delivered secrets (ENV_FILE, SERVICE_ACCOUNT_KEY) to disk.
    Returns a mapping of the env var names to the file paths that were written.
    """
    _SECRETS_DIR.mkdir(parents=True, exist_ok=True)

    secret_files_path: dict[str, Path] = {
        "ENV_FILE": _SECRETS_DIR / f"env.{env}",
        "SERVICE_ACCOUNT_KEY": _SECRETS_DIR / f"portfolio-{env}-sa.json",
    }

    written: dict[str, Path] = {}
    for env_var, file_path in secret_files_path.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        if not file_path.exists():
            file_path.write_text(value)
        written[env_var] = file_path
        if env_var == "SERVICE_ACCOUNT_KEY":
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(file_path)
    return written


@lru_cache(maxsize=1)
def _sm_client() -> secretmanager.SecretManagerServiceClient:
    return secretmanager.SecretManagerServiceClient()


@lru_cache(maxsize=64)
def _sm_get(resource: str) -> str:
    """Retrieve a secret value from Google Cloud Secret Manager."""
    resp = _sm_client().access_secret_version(name=resource)
    return resp.payload.data.decode("utf-8")


def get_secret(name: str, default: Optional[str] = None) -> str:
    """
    Resolution order:
      1) NAME (env/.env)
      2) NAME_RESOURCE (Secret Manager resource path)
      3) default
      4) else raise RuntimeError
    """
    if (v := os.getenv(name)) is not None:
        return v
    if (r := os.getenv(f"{name}_RESOURCE")):
        return _sm_get(r)
    if default is not None:
        return default
    raise RuntimeError(f"Missing {name} (or {name}_RESOURCE)")


@dataclass(frozen=True)
class AuthSettings:
    session_secret: str
    admin_emails: frozenset[str]
    algorithm: str = "HS256"


def load_auth_settings() -> AuthSettings:
    # ADMIN_EMAIL may hold a comma separated list; today it is a single address.
    raw_admins = get_secret("ADMIN_EMAIL", default="")
    admins = frozenset(item.strip() for item in raw_admins.split(",") if item.strip())
    return AuthSettings(
        session_secret=get_secret("SESSION_SECRET", default=""),
        admin_emails=admins,
    )
