"""Environment-backed settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Paths relative to project root (parent of src/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_TOKEN_PATH = _PROJECT_ROOT / "token.json"


def iana_time_zone(name: str | None) -> str | None:
    """Return ``name`` if it is a loadable IANA zone, else None.

    TZ may also hold ":/etc/localtime" style paths or POSIX rules such as
    "CET-1CEST,M3.5.0,M10.5.0/3", which Google rejects as a timeZone.
    """
    if not name or name.startswith(":"):
        return None
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    return name


@dataclass(frozen=True)
class Settings:
    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None
    token_path: Path = DEFAULT_TOKEN_PATH
    time_zone: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        token_path = env.get("TOKEN_PATH")
        return cls(
            client_id=env.get("GOOGLE_CLIENT_ID") or None,
            client_secret=env.get("GOOGLE_CLIENT_SECRET") or None,
            redirect_uri=env.get("GOOGLE_REDIRECT_URI") or None,
            token_path=Path(token_path).expanduser() if token_path else DEFAULT_TOKEN_PATH,
            time_zone=iana_time_zone(env.get("TZ")),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )

    def missing_oauth_fields(self) -> list[str]:
        """Names of the OAuth client variables that are not set."""
        fields = {
            "GOOGLE_CLIENT_ID": self.client_id,
            "GOOGLE_CLIENT_SECRET": self.client_secret,
            "GOOGLE_REDIRECT_URI": self.redirect_uri,
        }
        return [name for name, value in fields.items() if not value]
