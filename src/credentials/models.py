"""Data models for the credentials module."""

from .exceptions import CredentialScopeClosed


class CredentialHandle:
    """Short-lived pair of opaque secret values.

    Only valid inside the scope that produced it: once the scope closes the
    handle, reading ``username`` or ``secret`` raises CredentialScopeClosed.
    Values are excluded from ``repr`` so a handle never leaks into logs.

    Attributes:
        credential_id: Identifier the handle was resolved from.
    """

    def __init__(self, credential_id: str, username: str = "", secret: str = ""):
        self.credential_id = credential_id
        self._username = username
        self._secret = secret
        self._open = True

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"CredentialHandle(credential_id={self.credential_id!r}, {state})"

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def username(self) -> str:
        """User part of the credential. Empty for secret-text credentials."""
        self._require_open()
        return self._username

    @property
    def secret(self) -> str:
        """Password or token."""
        self._require_open()
        return self._secret

    def secret_values(self) -> list[str]:
        """Values the log masker must hide while the handle is open."""
        return [value for value in (self._secret,) if value]

    def close(self) -> None:
        """Invalidate the handle and drop its values."""
        self._open = False
        self._username = ""
        self._secret = ""

    def _require_open(self) -> None:
        if not self._open:
            raise CredentialScopeClosed(self.credential_id)
