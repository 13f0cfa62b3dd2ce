import os
import unittest
from unittest import mock

import pydantic

from docvault import settings


class ServerConfigTestCase(unittest.TestCase):
    @mock.patch.dict(os.environ, {}, clear=True)
    def test_defaults(self) -> None:
        config = settings.ServerConfig(_env_file=None)
        self.assertEqual(config.environment, 'development')
        self.assertEqual(config.host, 'localhost')
        self.assertEqual(config.port, 8000)

    @mock.patch.dict(
        os.environ,
        {'DOCVAULT_HOST': '0.0.0.0', 'DOCVAULT_PORT': '9000'},
        clear=True,
    )
    def test_environment_overrides(self) -> None:
        config = settings.ServerConfig(_env_file=None)
        self.assertEqual(config.host, '0.0.0.0')
        self.assertEqual(config.port, 9000)


class StorageSettingsTestCase(unittest.TestCase):
    """Test cases for object store settings."""

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_default_settings(self) -> None:
        """Test the defaults used when nothing is configured."""
        storage = settings.Storage(_env_file=None)
        self.assertEqual(storage.bucket, 'documents')
        self.assertEqual(storage.endpoint_domain, 'r2.cloudflarestorage.com')
        self.assertIsNone(storage.endpoint_url)
        self.assertEqual(
            storage.default_content_type, 'application/octet-stream'
        )
        self.assertEqual(storage.default_expires_in, 3600)
        self.assertEqual(storage.max_file_size, 50 * 1024 * 1024)
        self.assertEqual(
            storage.proxy_allowed_domains, ['r2.cloudflarestorage.com']
        )

    @mock.patch.dict(
        os.environ,
        {
            'DOCVAULT_STORAGE_BUCKET': 'archive',
            'DOCVAULT_STORAGE_PROXY_ALLOWED_DOMAINS': (
                '["r2.cloudflarestorage.com", "r2.dev"]'
            ),
        },
        clear=True,
    )
    def test_environment_overrides(self) -> None:
        storage = settings.Storage(_env_file=None)
        self.assertEqual(storage.bucket, 'archive')
        self.assertEqual(
            storage.proxy_allowed_domains,
            ['r2.cloudflarestorage.com', 'r2.dev'],
        )

    def test_bucket_rejects_slash(self) -> None:
        with self.assertRaises(pydantic.ValidationError):
            settings.Storage(_env_file=None, bucket='a/b')

    def test_bucket_rejects_empty(self) -> None:
        with self.assertRaises(pydantic.ValidationError):
            settings.Storage(_env_file=None, bucket='')

    def test_endpoint_url_trailing_slash_stripped(self) -> None:
        storage = settings.Storage(
            _env_file=None, endpoint_url='http://localhost:9000/'
        )
        self.assertEqual(storage.endpoint_url, 'http://localhost:9000')

    def test_endpoint_url_requires_http(self) -> None:
        with self.assertRaises(pydantic.ValidationError):
            settings.Storage(_env_file=None, endpoint_url='ftp://example')


class R2CredentialsTestCase(unittest.TestCase):
    """Test cases for credential settings."""

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_missing_reports_all_variables(self) -> None:
        creds = settings.R2Credentials(_env_file=None)
        self.assertEqual(
            creds.missing(),
            [
                'CLOUDFLARE_R2_ACCOUNT_ID',
                'CLOUDFLARE_R2_ACCESS_KEY_ID',
                'CLOUDFLARE_R2_SECRET_ACCESS_KEY',
            ],
        )

    @mock.patch.dict(
        os.environ,
        {
            'CLOUDFLARE_R2_ACCOUNT_ID': 'acct123',
            'CLOUDFLARE_R2_ACCESS_KEY_ID': 'AKIDEXAMPLE',
            'CLOUDFLARE_R2_SECRET_ACCESS_KEY': 'secret-key',
        },
        clear=True,
    )
    def test_from_environment(self) -> None:
        creds = settings.R2Credentials(_env_file=None)
        self.assertEqual(creds.missing(), [])
        self.assertEqual(creds.account_id, 'acct123')
        assert creds.secret_access_key is not None
        self.assertEqual(
            creds.secret_access_key.get_secret_value(), 'secret-key'
        )
        self.assertNotIn('secret-key', repr(creds))
