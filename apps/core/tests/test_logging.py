"""
Tests for structured logging and security events.
"""
import json
import logging
import sys
from unittest.mock import patch
from django.test import SimpleTestCase
from apps.core.logging import JSONFormatter, SecurityLogger, mask_principal


class MaskPrincipalTestCase(SimpleTestCase):
    """Test principal masking."""

    def test_mask_email_principal(self):
        self.assertEqual(mask_principal('ada@example.com'), 'a**@example.com')

    def test_mask_plain_principal(self):
        self.assertEqual(mask_principal('service'), 's******')

    def test_non_string_untouched(self):
        self.assertIsNone(mask_principal(None))
        self.assertEqual(mask_principal(''), '')


class JSONFormatterTestCase(SimpleTestCase):
    """Test JSON log formatting."""

    def _record(self, msg='hello', **extra):
        record = logging.LogRecord(
            name='apps.rbac', level=logging.INFO, pathname=__file__, lineno=10,
            msg=msg, args=(), exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(self._record()))

        self.assertEqual(data['level'], 'INFO')
        self.assertEqual(data['logger'], 'apps.rbac')
        self.assertEqual(data['message'], 'hello')
        self.assertIn('timestamp', data)

    def test_extra_fields_copied(self):
        data = json.loads(JSONFormatter().format(self._record(tenant_id='t-1', deleted=3)))

        self.assertEqual(data['tenant_id'], 't-1')
        self.assertEqual(data['deleted'], 3)

    def test_principal_masked(self):
        data = json.loads(JSONFormatter().format(self._record(principal='ada@example.com')))
        self.assertEqual(data['principal'], 'a**@example.com')

    def test_unserializable_values_stringified(self):
        data = json.loads(JSONFormatter().format(self._record(roles={'a'})))
        self.assertEqual(data['roles'], "{'a'}")

    def test_exception_info(self):
        try:
            raise ValueError('boom')
        except ValueError:
            record = self._record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        self.assertEqual(data['exception']['type'], 'ValueError')
        self.assertEqual(data['exception']['message'], 'boom')


class SecurityLoggerTestCase(SimpleTestCase):
    """Test security event logging."""

    def test_permission_denied_logged(self):
        with self.assertLogs('security', level='WARNING') as logs:
            SecurityLogger.log_permission_denied(
                user_id='u-1', tenant_id='t-1',
                required={'VIEW_ROLES', 'CREATE_ROLES'}, missing={'CREATE_ROLES'},
            )

        record = logs.records[0]
        self.assertEqual(record.event_type, 'permission_denied')
        self.assertEqual(record.required_authorities, ['CREATE_ROLES', 'VIEW_ROLES'])
        self.assertEqual(record.missing_authorities, ['CREATE_ROLES'])

    def test_ordinary_rejection_not_sent_to_sentry(self):
        with patch('apps.core.logging.sentry_sdk.capture_message') as capture:
            with self.assertLogs('security', level='WARNING') as logs:
                SecurityLogger.log_role_change_rejected('TenantScopeMismatch', 'u-1', 't-1')

        capture.assert_not_called()
        self.assertEqual(logs.records[0].event_type, 'role_change_rejected')

    def test_superadmin_escalation_sent_to_sentry(self):
        with patch('apps.core.logging.sentry_sdk.capture_message') as capture:
            with self.assertLogs('security', level='WARNING') as logs:
                SecurityLogger.log_role_change_rejected(
                    'SuperadminGrantRequiresSuperadmin', 'u-1', 't-1'
                )

        capture.assert_called_once()
        self.assertEqual(logs.records[0].event_type, 'superadmin_escalation_attempt')
        self.assertEqual(logs.records[0].error_code, 'SuperadminGrantRequiresSuperadmin')

    def test_system_admin_grant_attempt(self):
        with patch('apps.core.logging.sentry_sdk.capture_message'):
            with self.assertLogs('security', level='WARNING') as logs:
                SecurityLogger.log_role_change_rejected('SystemAdminRoleReserved', None, 't-1')

        self.assertEqual(logs.records[0].event_type, 'system_admin_grant_attempt')
