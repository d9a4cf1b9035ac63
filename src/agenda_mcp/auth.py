"""OAuth2 credential storage and the console consent flow."""

import json
import logging
import os
import sys
import tempfile
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from .config import Settings
from .errors import AuthorizationError, ConfigurationError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

ConsentProvider = Callable[[str], str]


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    PENDING_CONSENT = "pending_consent"
    AUTHORIZED = "authorized"


class CredentialStore:
    """A single JSON token record on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._current: dict[str, Any] | None = None

    def load(self) -> dict[str, Any]:
        """Read and decode the stored record. Raises on a missing or malformed file."""
        with open(self.path, encoding="utf-8") as f:
            info = json.load(f)
        if not isinstance(info, dict):
            raise ValueError(f"Token file {self.path} does not hold a JSON object")
        self._current = info
        return info

    def save(self, info: dict[str, Any]) -> None:
        """Replace the stored record. Readers never observe a half-written file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(info, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        self._current = dict(info)
        logger.info("Token stored to %s", self.path)

    def current_or_none(self) -> dict[str, Any] | None:
        return self._current


def console_consent(auth_url: str) -> str:
    """Print the authorization URL and read one line (the code) from stdin.

    Everything goes to stderr because stdout carries the MCP stdio transport.
    """
    print(f"Authorize this app by visiting this URL: {auth_url}", file=sys.stderr)
    print("Enter the code from that page here: ", end="", file=sys.stderr, flush=True)
    return sys.stdin.readline().strip()


def _parse_expiry(info: dict[str, Any]) -> datetime | None:
    # google-auth writes "expiry" as naive UTC ISO text; raw token endpoint
    # records carry "expiry_date" in epoch milliseconds.
    expiry = info.get("expiry")
    if expiry:
        return datetime.strptime(expiry.rstrip("Z").split(".")[0], "%Y-%m-%dT%H:%M:%S")
    expiry_ms = info.get("expiry_date")
    if expiry_ms:
        return datetime.fromtimestamp(int(expiry_ms) / 1000, tz=timezone.utc).replace(tzinfo=None)
    return None


def credentials_from_info(info: dict[str, Any], settings: Settings) -> Credentials:
    """Build Credentials from a stored record without touching the network."""
    token = info.get("token") or info["access_token"]
    scopes = info.get("scopes") or info.get("scope") or SCOPES
    if isinstance(scopes, str):
        scopes = scopes.split()
    return Credentials(
        token=token,
        refresh_token=info.get("refresh_token"),
        token_uri=info.get("token_uri", GOOGLE_TOKEN_URI),
        client_id=info.get("client_id", settings.client_id),
        client_secret=info.get("client_secret", settings.client_secret),
        scopes=scopes,
        expiry=_parse_expiry(info),
    )


class CredentialManager:
    """Produces authorized Google credentials.

    A stored token is reused as-is: there is no expiry check and no refresh
    here, so an expired or revoked token only shows up as an upstream 401.
    Without a usable stored token the consent provider is asked for an
    authorization code, which is exchanged and persisted.
    """

    def __init__(
        self,
        settings: Settings,
        store: CredentialStore | None = None,
        consent_provider: ConsentProvider = console_consent,
    ):
        self.settings = settings
        self.store = store if store is not None else CredentialStore(settings.token_path)
        self.consent_provider = consent_provider
        self.state = AuthState.UNAUTHENTICATED

    def _check_configuration(self) -> None:
        missing = self.settings.missing_oauth_fields()
        if missing:
            raise ConfigurationError(
                "Missing required environment variables for Google OAuth2: " + ", ".join(missing)
            )

    def _client_config(self) -> dict[str, Any]:
        return {
            "installed": {
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.settings.redirect_uri],
            }
        }

    def authorize(self, force_consent: bool = False) -> Credentials:
        """Return credentials from the store, or run consent to obtain new ones."""
        self._check_configuration()
        self.state = AuthState.UNAUTHENTICATED

        if not force_consent:
            try:
                creds = credentials_from_info(self.store.load(), self.settings)
            except FileNotFoundError:
                logger.info("No stored token at %s", self.store.path)
            except Exception as e:
                logger.warning("Could not load stored token from %s: %s", self.store.path, e)
            else:
                self.state = AuthState.AUTHORIZED
                return creds

        self.state = AuthState.PENDING_CONSENT
        creds = self._run_consent()
        self.state = AuthState.AUTHORIZED
        return creds

    def _run_consent(self) -> Credentials:
        flow = Flow.from_client_config(
            self._client_config(), scopes=SCOPES, redirect_uri=self.settings.redirect_uri
        )
        auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
        code = (self.consent_provider(auth_url) or "").strip()
        if not code:
            raise AuthorizationError("No authorization code was entered")
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            raise AuthorizationError(f"Error retrieving access token: {e}") from e
        creds = flow.credentials
        self.store.save(json.loads(creds.to_json()))
        return creds


def run_oauth_flow() -> None:
    """
    Run the consent flow and save token.json, replacing any stored token.
    Call this via: python -m agenda_mcp.auth  (or the agenda-mcp-auth script)
    """
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(stream=sys.stderr, level=settings.log_level)
    manager = CredentialManager(settings)
    try:
        manager.authorize(force_consent=True)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Set them in the environment or in a .env file.", file=sys.stderr)
        raise SystemExit(1)
    except AuthorizationError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    print(f"Token saved to {manager.store.path}", file=sys.stderr)


if __name__ == "__main__":
    run_oauth_flow()
