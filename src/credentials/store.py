"""Credential store interfaces for resolving credential ids."""

import re
from abc import ABC, abstractmethod
from typing import Mapping

from .exceptions import CredentialNotFound
from .models import CredentialHandle

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def env_prefix(credential_id: str) -> str:
    """Map a credential id to its environment variable prefix.

    ``dockerhub-creds`` becomes ``DOCKERHUB_CREDS``.
    """
    return _NON_ALNUM.sub("_", credential_id).strip("_").upper()


class CredentialStore(ABC):
    """Interface for resolving credential ids to secret values.

    Implementations can use different backends:
    - EnvCredentialStore: Reads CI-style bindings from an environment mapping
    - InMemoryCredentialStore: For testing
    """

    @abstractmethod
    def get(self, credential_id: str) -> CredentialHandle:
        """Resolve a credential id to a fresh handle.

        Args:
            credential_id: Identifier of the credential.

        Returns:
            A new, open CredentialHandle.

        Raises:
            CredentialNotFound: If the store has no such credential.
        """
        pass


class EnvCredentialStore(CredentialStore):
    """Resolves credentials bound into the environment by the CI server.

    Username/password credentials are read from ``<PREFIX>_USR`` and
    ``<PREFIX>_PSW``; secret-text credentials from ``<PREFIX>`` alone, where
    the prefix is the upper-cased id with non-alphanumerics replaced by ``_``.
    """

    def __init__(self, env: Mapping[str, str]):
        """Initialize the store.

        Args:
            env: Environment mapping to read from. Copied so later changes
                to the source mapping are not observed.
        """
        self._env = dict(env)

    def get(self, credential_id: str) -> CredentialHandle:
        prefix = env_prefix(credential_id)
        password = self._env.get(f"{prefix}_PSW")
        if password:
            return CredentialHandle(
                credential_id,
                username=self._env.get(f"{prefix}_USR", ""),
                secret=password,
            )
        secret = self._env.get(prefix)
        if secret:
            return CredentialHandle(credential_id, secret=secret)
        raise CredentialNotFound(
            credential_id, f"expected {prefix}_USR/{prefix}_PSW or {prefix}"
        )


class InMemoryCredentialStore(CredentialStore):
    """In-memory implementation for testing and local runs."""

    def __init__(self, credentials: Mapping[str, tuple[str, str]] | None = None) -> None:
        """Initialize with an optional ``{id: (username, secret)}`` mapping."""
        self._credentials: dict[str, tuple[str, str]] = dict(credentials or {})

    def add(self, credential_id: str, username: str, secret: str) -> None:
        self._credentials[credential_id] = (username, secret)

    def get(self, credential_id: str) -> CredentialHandle:
        if credential_id not in self._credentials:
            raise CredentialNotFound(credential_id)
        username, secret = self._credentials[credential_id]
        return CredentialHandle(credential_id, username=username, secret=secret)
