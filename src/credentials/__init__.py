"""Scoped credential handling for pipeline stages.

Public API:
    - CredentialScope: Acquire a secret for a block, always release afterwards
    - CredentialHandle: Short-lived secret pair valid only inside its scope
    - CredentialStore: Interface for resolving credential ids
    - EnvCredentialStore: Reads CI-style ``<ID>_USR``/``<ID>_PSW`` bindings
    - InMemoryCredentialStore: In-memory implementation
    - CredentialNotFound: Credential id could not be resolved
"""

from .exceptions import CredentialError, CredentialNotFound, CredentialScopeClosed
from .models import CredentialHandle
from .scope import CredentialScope
from .store import CredentialStore, EnvCredentialStore, InMemoryCredentialStore, env_prefix

__all__ = [
    "CredentialScope",
    "CredentialHandle",
    "CredentialStore",
    "EnvCredentialStore",
    "InMemoryCredentialStore",
    "env_prefix",
    "CredentialError",
    "CredentialNotFound",
    "CredentialScopeClosed",
]
