"""Object store credentials and the providers that supply them."""

import dataclasses
import logging
import typing

from docvault import errors, settings

LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Credentials:
    """Account and key pair used to sign object store requests."""

    account_id: str
    access_key_id: str
    secret_access_key: str = dataclasses.field(repr=False)


@typing.runtime_checkable
class CredentialProvider(typing.Protocol):
    def get(self) -> Credentials:
        """Return the credentials or raise ConfigurationError."""
        ...


class StaticCredentialProvider:
    """Provider for credentials known at construction time."""

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials

    def get(self) -> Credentials:
        return self._credentials


class SettingsCredentialProvider:
    """Snapshot credentials from the environment once.

    The snapshot is taken at construction and never refreshed, so the
    provider can be shared between concurrent requests without locking.
    When variables are missing the provider still constructs; every
    call to :meth:`get` then raises :class:`errors.ConfigurationError`
    naming them.

    """

    def __init__(
        self,
        credential_settings: settings.R2Credentials | None = None,
    ) -> None:
        if credential_settings is None:
            credential_settings = settings.R2Credentials()
        self._missing = credential_settings.missing()
        self._credentials: Credentials | None = None
        account_id = credential_settings.account_id
        access_key_id = credential_settings.access_key_id
        secret = credential_settings.secret_access_key
        if account_id and access_key_id and secret and not self._missing:
            self._credentials = Credentials(
                account_id=account_id,
                access_key_id=access_key_id,
                secret_access_key=secret.get_secret_value(),
            )
        else:
            LOGGER.error(
                'Missing object store credentials: %s',
                ', '.join(self._missing),
            )

    @property
    def missing(self) -> list[str]:
        return list(self._missing)

    def get(self) -> Credentials:
        if self._credentials is None:
            raise errors.ConfigurationError(self.missing)
        return self._credentials
