import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # If python-dotenv isn't installed or .env isn't present, that's fine.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # MongoDB
    # -----------------
    MONGO_URI: str = os.environ.get("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB: str = os.environ.get("MONGO_DB", "postithere")
    # Credentials are optional; when set they are checked against MONGO_AUTH_SOURCE.
    MONGO_USER: str | None = (os.environ.get("MONGO_USER") or "").strip() or None
    MONGO_PASSWORD: str | None = os.environ.get("MONGO_PASSWORD") or None
    MONGO_AUTH_SOURCE: str = os.environ.get("MONGO_AUTH_SOURCE", "admin")
    # Applied to server selection and socket connect.
    MONGO_TIMEOUT_MS: int = int(os.environ.get("MONGO_TIMEOUT_MS", "5000"))
    MONGO_RETRY_WRITES: bool = _env_bool("MONGO_RETRY_WRITES", True) is True

    # -----------------
    # Auth (JWT)
    # -----------------
    # There is no default secret: the API refuses to start without one.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "")
    AUTH_JWT_ISSUER: str = os.environ.get("AUTH_JWT_ISSUER", "postithere")
    AUTH_JWT_AUDIENCE: str = os.environ.get("AUTH_JWT_AUDIENCE", "postithere-users")
    AUTH_JWT_REALM: str = os.environ.get("AUTH_JWT_REALM", "postithere")
    AUTH_TOKEN_VALIDITY_HOURS: int = int(os.environ.get("AUTH_TOKEN_VALIDITY_HOURS", "10"))

    # pbkdf2_sha256 work factor
    AUTH_HASH_ROUNDS: int = int(os.environ.get("AUTH_HASH_ROUNDS", "29000"))

    # -----------------
    # Feature flags
    # -----------------
    # Name of the boolean document in the `config` collection that opens registration.
    REGISTRATION_FLAG_KEY: str = os.environ.get("REGISTRATION_FLAG_KEY", "allowRegistration")

    # -----------------
    # CORS
    # -----------------
    # "*" allows any origin (echoed back so credentialed requests work).
    CORS_ALLOW_ORIGINS: str = os.environ.get("CORS_ALLOW_ORIGINS", "*")

    # -----------------
    # Server
    # -----------------
    API_HOST: str = os.environ.get("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.environ.get("API_PORT", "8080"))


def load_config() -> Config:
    return Config()
