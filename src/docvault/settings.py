import pydantic
import pydantic_settings

_ENV_VARIABLES = {
    'account_id': 'CLOUDFLARE_R2_ACCOUNT_ID',
    'access_key_id': 'CLOUDFLARE_R2_ACCESS_KEY_ID',
    'secret_access_key': 'CLOUDFLARE_R2_SECRET_ACCESS_KEY',
}


class ServerConfig(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='DOCVAULT_',
        case_sensitive=False,
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )
    environment: str = 'development'
    host: str = 'localhost'
    port: int = 8000


class Storage(pydantic_settings.BaseSettings):
    """Object store settings shared by every storage operation."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='DOCVAULT_STORAGE_',
        case_sensitive=False,
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    bucket: str = 'documents'
    endpoint_domain: str = 'r2.cloudflarestorage.com'
    endpoint_url: str | None = None
    default_content_type: str = 'application/octet-stream'
    default_expires_in: int = 3600
    max_file_size: int = 50 * 1024 * 1024  # 50 MB
    proxy_allowed_domains: list[str] = ['r2.cloudflarestorage.com']

    @pydantic.field_validator('bucket')
    @classmethod
    def validate_bucket(cls, value: str) -> str:
        if not value or '/' in value:
            raise ValueError('Bucket must be a non-empty name without "/"')
        return value

    @pydantic.field_validator('endpoint_url')
    @classmethod
    def validate_endpoint_url(cls, value: str | None) -> str | None:
        """Strip trailing slashes so paths can be appended verbatim."""
        if value is None:
            return None
        value = value.rstrip('/')
        if not value.startswith(('http://', 'https://')):
            raise ValueError('endpoint_url must be an http(s) URL')
        return value


class R2Credentials(pydantic_settings.BaseSettings):
    """Object store credentials.

    Every field is optional here so that a partially configured
    environment can be reported in full through :meth:`missing` instead
    of failing on the first absent variable.

    """

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='CLOUDFLARE_R2_',
        case_sensitive=False,
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    account_id: str | None = None
    access_key_id: str | None = None
    secret_access_key: pydantic.SecretStr | None = None

    def missing(self) -> list[str]:
        """Return the environment variable names that are not set."""
        missing = []
        for field, variable in _ENV_VARIABLES.items():
            value = getattr(self, field)
            if isinstance(value, pydantic.SecretStr):
                value = value.get_secret_value()
            if not value:
                missing.append(variable)
        return missing
