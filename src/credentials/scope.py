"""CredentialScope - scoped acquisition and guaranteed release of secrets."""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from src.logging_config import register_secret, unregister_secret

from .models import CredentialHandle
from .store import CredentialStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ReleaseAction = Callable[[CredentialHandle], None]


class CredentialScope:
    """Acquires a named secret for the duration of a block of operations.

    The release action (e.g. ``docker logout``) runs exactly once on every
    exit path. A failing release is logged and never masks the block's own
    result or exception. Every secret acquired through the scope stays
    masked in log output until ``close`` is called at the end of the run,
    so errors that quote a secret after its block has ended are still
    masked.

    Example:
        scope = CredentialScope(EnvCredentialStore(os.environ))
        scope.with_credential(
            "dockerhub-creds",
            lambda handle: login_and_push(handle),
            release=lambda handle: logout(),
        )
    """

    def __init__(self, store: CredentialStore):
        self._store = store
        self._exposed: list[str] = []

    @contextmanager
    def open(
        self, credential_id: str, release: Optional[ReleaseAction] = None
    ) -> Iterator[CredentialHandle]:
        """Context manager form of ``with_credential``.

        Raises:
            CredentialNotFound: If the id cannot be resolved. Nothing is
                acquired in that case, so the release action does not run.
        """
        handle = self._store.get(credential_id)
        secrets = handle.secret_values()
        for value in secrets:
            register_secret(value)
        self._exposed.extend(secrets)
        logger.debug("Acquired credential '%s'", credential_id)
        try:
            yield handle
        finally:
            try:
                self._release(handle, release)
            finally:
                handle.close()
                logger.debug("Released credential '%s'", credential_id)

    def with_credential(
        self,
        credential_id: str,
        body: Callable[[CredentialHandle], T],
        release: Optional[ReleaseAction] = None,
    ) -> T:
        """Run ``body`` with the resolved credential, then always release it.

        Args:
            credential_id: Identifier of the credential to acquire.
            body: Function receiving the open handle.
            release: Action run after ``body`` on every exit path.

        Returns:
            Whatever ``body`` returns.

        Raises:
            CredentialNotFound: If the id cannot be resolved.
            Exception: Anything ``body`` raises, unchanged.
        """
        with self.open(credential_id, release) as handle:
            return body(handle)

    def close(self) -> None:
        """Stop masking the secrets acquired through this scope."""
        for value in self._exposed:
            unregister_secret(value)
        self._exposed.clear()

    @staticmethod
    def _release(handle: CredentialHandle, release: Optional[ReleaseAction]) -> None:
        if release is None:
            return
        try:
            release(handle)
        except Exception:
            logger.warning(
                "Release action for credential '%s' failed",
                handle.credential_id,
                exc_info=True,
            )
