import unittest
from unittest import mock

from typer import testing

from docvault import entrypoint, errors, version


class ServeTestCase(unittest.TestCase):
    """Test cases for serve function."""

    @mock.patch('docvault.entrypoint.uvicorn.run')
    @mock.patch('docvault.entrypoint.settings.ServerConfig')
    def test_serve_production_mode(
        self, mock_config: mock.Mock, mock_uvicorn_run: mock.Mock
    ) -> None:
        """Test serve in production mode."""
        mock_instance = mock.Mock()
        mock_instance.environment = 'production'
        mock_instance.host = 'localhost'
        mock_instance.port = 8000
        mock_config.return_value = mock_instance

        entrypoint.serve(dev=False)

        mock_uvicorn_run.assert_called_once()
        call_args = mock_uvicorn_run.call_args

        # The first argument is the app factory string
        self.assertEqual(call_args[0][0], 'docvault.app:create_app')

        kwargs = call_args[1]
        self.assertTrue(kwargs['factory'])
        self.assertEqual(kwargs['host'], 'localhost')
        self.assertEqual(kwargs['port'], 8000)
        self.assertIn('log_config', kwargs)
        self.assertTrue(kwargs['proxy_headers'])
        self.assertIn(('Server', f'docvault/{version}'), kwargs['headers'])
        self.assertTrue(kwargs['date_header'])
        self.assertFalse(kwargs['server_header'])
        self.assertEqual(kwargs['ws'], 'none')

        # Production mode should not have reload
        self.assertNotIn('reload', kwargs)
        self.assertEqual(
            kwargs['log_config']['loggers']['docvault']['level'], 'INFO'
        )

    @mock.patch('docvault.entrypoint.uvicorn.run')
    @mock.patch('docvault.entrypoint.settings.ServerConfig')
    def test_serve_development_mode(
        self, mock_config: mock.Mock, mock_uvicorn_run: mock.Mock
    ) -> None:
        """Test serve in development mode."""
        mock_instance = mock.Mock()
        mock_instance.environment = 'development'
        mock_instance.host = 'localhost'
        mock_instance.port = 8000
        mock_config.return_value = mock_instance

        entrypoint.serve(dev=False)

        kwargs = mock_uvicorn_run.call_args[1]
        self.assertTrue(kwargs['reload'])
        self.assertIn('reload_dirs', kwargs)
        self.assertIn('**/*.pyc', kwargs['reload_excludes'])
        self.assertEqual(
            kwargs['log_config']['loggers']['docvault']['level'], 'DEBUG'
        )

    @mock.patch('docvault.entrypoint.uvicorn.run')
    @mock.patch('docvault.entrypoint.settings.ServerConfig')
    def test_serve_with_dev_flag(
        self, mock_config: mock.Mock, mock_uvicorn_run: mock.Mock
    ) -> None:
        """Test serve with dev=True flag."""
        mock_instance = mock.Mock()
        mock_instance.environment = 'production'
        mock_instance.host = 'localhost'
        mock_instance.port = 8000
        mock_config.return_value = mock_instance

        entrypoint.serve(dev=True)

        # dev=True should enable reload regardless of environment
        kwargs = mock_uvicorn_run.call_args[1]
        self.assertTrue(kwargs['reload'])
        self.assertIn('reload_dirs', kwargs)

    @mock.patch('docvault.entrypoint.uvicorn.run')
    @mock.patch('docvault.entrypoint.settings.ServerConfig')
    def test_serve_custom_host_port(
        self, mock_config: mock.Mock, mock_uvicorn_run: mock.Mock
    ) -> None:
        """Test serve with custom host and port."""
        mock_instance = mock.Mock()
        mock_instance.environment = 'production'
        mock_instance.host = '0.0.0.0'
        mock_instance.port = 9000
        mock_config.return_value = mock_instance

        entrypoint.serve(dev=False)

        kwargs = mock_uvicorn_run.call_args[1]
        self.assertEqual(kwargs['host'], '0.0.0.0')
        self.assertEqual(kwargs['port'], 9000)


class LogConfigTestCase(unittest.TestCase):
    def test_httpx_logger_quieted(self) -> None:
        """Test that request URLs carrying signatures are not logged."""
        config = entrypoint.load_log_config()
        self.assertEqual(config['version'], 1)
        self.assertEqual(config['loggers']['httpx']['level'], 'WARNING')


class PresignCommandTestCase(unittest.TestCase):
    """Test cases for the presign command."""

    def setUp(self) -> None:
        self.runner = testing.CliRunner()
        dict_config = mock.patch('logging.config.dictConfig')
        dict_config.start()
        self.addCleanup(dict_config.stop)

    @mock.patch('docvault.entrypoint.client.StorageClient')
    def test_presign_prints_url(self, mock_client: mock.Mock) -> None:
        mock_client.return_value.presigned_url.return_value = (
            'https://acct123.r2.cloudflarestorage.com/documents/a.pdf?sig'
        )

        result = self.runner.invoke(
            entrypoint.main, ['presign', 'a.pdf', '--expires-in', '60']
        )

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('/documents/a.pdf?sig', result.output)
        mock_client.return_value.presigned_url.assert_called_once_with(
            'a.pdf', 60
        )

    @mock.patch('docvault.entrypoint.client.StorageClient')
    def test_presign_missing_credentials(
        self, mock_client: mock.Mock
    ) -> None:
        mock_client.return_value.presigned_url.side_effect = (
            errors.ConfigurationError(['CLOUDFLARE_R2_ACCOUNT_ID'])
        )

        result = self.runner.invoke(entrypoint.main, ['presign', 'a.pdf'])

        self.assertEqual(result.exit_code, 1)
        self.assertIn('CLOUDFLARE_R2_ACCOUNT_ID', result.output)

    @mock.patch('docvault.entrypoint.client.StorageClient')
    def test_presign_invalid_expiry(self, mock_client: mock.Mock) -> None:
        mock_client.return_value.presigned_url.side_effect = (
            errors.ValidationError('expiresIn out of range')
        )

        result = self.runner.invoke(
            entrypoint.main, ['presign', 'a.pdf', '--expires-in', '0']
        )

        self.assertEqual(result.exit_code, 1)
        self.assertIn('expiresIn out of range', result.output)

    @mock.patch('docvault.entrypoint.client.StorageClient')
    def test_presign_default_expiry(self, mock_client: mock.Mock) -> None:
        mock_client.return_value.presigned_url.return_value = 'https://x'

        result = self.runner.invoke(entrypoint.main, ['presign', 'a.pdf'])

        self.assertEqual(result.exit_code, 0, result.output)
        mock_client.return_value.presigned_url.assert_called_once_with(
            'a.pdf', 3600
        )
