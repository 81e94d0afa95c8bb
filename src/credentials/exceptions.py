"""Exceptions for the credentials module."""


class CredentialError(Exception):
    """Base exception for credential handling errors."""

    pass


class CredentialNotFound(CredentialError):
    """Raised when a credential id cannot be resolved by the store.

    Always fatal to a pipeline run: no stage proceeds without its secret.
    """

    def __init__(self, credential_id: str, detail: str | None = None):
        self.credential_id = credential_id
        message = f"Credential '{credential_id}' not found"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class CredentialScopeClosed(CredentialError):
    """Raised when a handle is used after its scope has ended."""

    def __init__(self, credential_id: str):
        self.credential_id = credential_id
        super().__init__(f"Credential '{credential_id}' used outside of its scope")
