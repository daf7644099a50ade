"""
Identity providers telling the service who is booking.

Account registration and credential checks live in the backend. Against the
file store we only remember which owner id is signed in; against the REST
backend the owner is the user named in the bearer token.
"""

import logging
from pathlib import Path
from typing import Optional

import jwt
import keyring
from keyring.errors import KeyringError
from rich.console import Console

logger = logging.getLogger(__name__)

console = Console()


KEYRING_SERVICE_NAME = "carreservation"
KEYRING_USERNAME = "current-owner"


class SessionAuthenticator:
    """
    Remembers the signed-in owner between CLI invocations.

    The owner id is kept in the system keyring; when no keyring backend is
    usable it falls back to a plain file readable only by the current user.
    """

    def __init__(
        self,
        session_file: Path | None = None,
        use_keyring: bool = True,
    ):
        """
        Initialize the authenticator.

        Args:
            session_file: Fallback file for the session
            use_keyring: Try the system keyring before the file
        """
        self.session_file = session_file or Path.home() / ".carreservation_session"
        self._keyring_supported = use_keyring
        self._backend = "keyring" if use_keyring else "file"

    @property
    def backend(self) -> str:
        """Return the active session backend (keyring or file)."""
        return self._backend

    def current_owner_id(self) -> Optional[str]:
        owner_id = self._load_from_keyring()
        if owner_id is None:
            owner_id = self._load_from_file()
        return owner_id or None

    def login(self, owner_id: str) -> None:
        """Sign in as ``owner_id``, replacing any previous session."""
        owner_id = owner_id.strip()
        if not owner_id:
            raise ValueError("Owner id must not be empty.")

        if self._keyring_supported and self._save_to_keyring(owner_id):
            return
        self._save_to_file(owner_id)

    def logout(self) -> None:
        """Forget the signed-in owner."""
        if self.session_file.exists():
            self.session_file.unlink()
        if self._keyring_supported:
            try:
                keyring.delete_password(KEYRING_SERVICE_NAME, KEYRING_USERNAME)
            except KeyringError as exc:  # pragma: no cover - environment dependent
                logger.warning("Could not remove session from keyring: %s", exc)

    def _load_from_keyring(self) -> Optional[str]:
        if not self._keyring_supported:
            return None

        try:
            return keyring.get_password(KEYRING_SERVICE_NAME, KEYRING_USERNAME)
        except KeyringError as exc:  # pragma: no cover - environment dependent
            self._handle_keyring_failure(f"reading session failed: {exc}")
            return None

    def _load_from_file(self) -> Optional[str]:
        if self.session_file.exists():
            try:
                with open(self.session_file, "r", encoding="utf-8") as file_handle:
                    return file_handle.read().strip()
            except OSError as exc:
                logger.warning("Could not read session file %s: %s", self.session_file, exc)
        return None

    def _save_to_keyring(self, owner_id: str) -> bool:
        try:
            keyring.set_password(KEYRING_SERVICE_NAME, KEYRING_USERNAME, owner_id)
            self._backend = "keyring"
            return True
        except KeyringError as exc:  # pragma: no cover - environment dependent
            self._handle_keyring_failure(f"writing session failed: {exc}")
            return False

    def _save_to_file(self, owner_id: str) -> None:
        try:
            self.session_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.session_file, "w", encoding="utf-8") as file_handle:
                file_handle.write(owner_id)
            self.session_file.chmod(0o600)
        except OSError as exc:
            logger.warning("Could not save session to %s: %s", self.session_file, exc)
            console.print(f"[yellow]Warning: session could not be saved: {exc}[/yellow]")

    def _handle_keyring_failure(self, reason: str) -> None:
        if self._keyring_supported:
            logger.warning(
                "Secure session storage unavailable (%s). Falling back to %s.",
                reason,
                self.session_file,
            )
        self._keyring_supported = False
        self._backend = "file"


class StaticAuthProvider:
    """
    Identity provider with a fixed owner.

    Useful for tests and mock mode; ``None`` behaves as signed out.
    """

    def __init__(self, owner_id: Optional[str] = None):
        self.owner_id = owner_id

    def current_owner_id(self) -> Optional[str]:
        return self.owner_id


class TokenAuthProvider:
    """
    Identity taken from the backend's bearer token.

    The reservation backend issues JWTs carrying a ``user_id`` claim and
    reports that same id as each reservation's owner, so the owner checks in
    the service line up with what the server enforces. The signature is not
    verified here; the backend checks it on every request.
    """

    USER_ID_CLAIM = "user_id"

    def __init__(self, access_token: Optional[str]):
        self.access_token = access_token

    def current_owner_id(self) -> Optional[str]:
        if not self.access_token:
            return None

        try:
            payload = jwt.decode(self.access_token, options={"verify_signature": False})
        except jwt.InvalidTokenError as exc:
            logger.warning("Could not read user from API token: %s", exc)
            return None

        user_id = payload.get(self.USER_ID_CLAIM)
        if user_id is None:
            logger.warning("API token has no %s claim", self.USER_ID_CLAIM)
            return None
        return str(user_id)
