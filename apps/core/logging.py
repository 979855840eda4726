"""
Structured JSON logging and security event logging.
"""
import json
import logging
import traceback
from datetime import datetime, timezone as dt_timezone

import sentry_sdk
from django.utils import timezone

# LogRecord attributes that are not user supplied ``extra`` fields
RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
})


def mask_principal(principal):
    """Keep the first character and the domain of a principal name."""
    if not isinstance(principal, str) or not principal:
        return principal
    local, sep, domain = principal.partition('@')
    return local[:1] + '*' * max(len(local) - 1, 0) + sep + domain


class JSONFormatter(logging.Formatter):
    """
    Format log records as one JSON object per line.

    ``extra`` fields are copied into the payload; values that are not JSON
    serializable are stringified. Fields named ``principal`` are masked.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(dt_timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key in RESERVED_ATTRS or key.startswith('_'):
                continue
            if key == 'principal':
                value = mask_principal(value)
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data)


class SecurityLogger:
    """
    Centralized logging for authorization events.

    Events go to the ``security`` logger with structured data. Privilege
    escalation attempts are also sent to Sentry.
    """

    CRITICAL_EVENTS = {
        'superadmin_escalation_attempt',
        'system_admin_grant_attempt',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', **context):
        """
        Log a security event with structured data.

        Args:
            event_type: Type of security event (e.g., 'permission_denied')
            level: Log level ('info', 'warning', 'error', 'critical')
            **context: Additional context data (user_id, tenant_id, etc.)
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'event_time': timezone.now().isoformat(),
        }
        log_data.update({key: _stringify(value) for key, value in context.items()})

        log_method = getattr(logger, level, logger.warning)
        log_method(f"Security event: {event_type}", extra=log_data)

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
            )

    @staticmethod
    def log_permission_denied(user_id, tenant_id, required, missing, **context):
        """Log a capability gate denial."""
        SecurityLogger.log_event(
            'permission_denied',
            level='warning',
            user_id=user_id,
            tenant_id=tenant_id,
            required_authorities=sorted(required),
            missing_authorities=sorted(missing),
            **context
        )

    @staticmethod
    def log_role_change_rejected(code, user_id, tenant_id, **context):
        """Log a role assignment refused by the role-assignment guard."""
        event_type = 'role_change_rejected'
        if code == 'SuperadminGrantRequiresSuperadmin':
            event_type = 'superadmin_escalation_attempt'
        elif code == 'SystemAdminRoleReserved':
            event_type = 'system_admin_grant_attempt'

        SecurityLogger.log_event(
            event_type,
            level='warning',
            error_code=code,
            user_id=user_id,
            tenant_id=tenant_id,
            **context
        )


def _stringify(value):
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return str(value)
