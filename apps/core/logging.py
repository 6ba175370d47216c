"""
Custom logging formatters for structured JSON logging, and security event logging.
"""
import json
import logging
import re
import traceback
from datetime import datetime, timezone as dt_timezone
from django.utils import timezone
import sentry_sdk


class PIIMasker:
    """
    Utility class to mask sensitive PII data in logs.
    """

    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')
    API_KEY_PATTERN = re.compile(r'(api[_-]?key|token|secret|password|authorization)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)', re.IGNORECASE)

    # Sensitive field names that should be masked
    SENSITIVE_FIELDS = {
        'password', 'passwd',
        'api_key', 'access_token', 'refresh_token', 'bearer_token',
        'secret', 'secret_key', 'authorization', 'cookie',
    }

    @classmethod
    def mask_email(cls, text):
        """Mask email addresses in text."""
        if not isinstance(text, str):
            return text
        def mask_email_match(match):
            username, _, domain = match.group(0).partition('@')
            masked_username = username[0] + '*' * (len(username) - 1) if len(username) > 1 else username
            return f"{masked_username}@{domain}"
        return cls.EMAIL_PATTERN.sub(mask_email_match, text)

    @classmethod
    def mask_api_keys(cls, text):
        """Mask API keys, tokens, and secrets in text."""
        if not isinstance(text, str):
            return text
        return cls.API_KEY_PATTERN.sub(r'\1: ********', text)

    @classmethod
    def mask_text(cls, text):
        """Apply all masking patterns to text."""
        if not isinstance(text, str):
            return text
        return cls.mask_api_keys(cls.mask_email(text))

    @classmethod
    def mask_dict(cls, data):
        """Recursively mask sensitive data in dictionaries."""
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            if any(sensitive in key.lower() for sensitive in cls.SENSITIVE_FIELDS):
                if value and not isinstance(value, (dict, list)):
                    masked[key] = '********'
                else:
                    masked[key] = value
            elif isinstance(value, dict):
                masked[key] = cls.mask_dict(value)
            elif isinstance(value, list):
                masked[key] = [cls.mask_dict(item) if isinstance(item, dict) else cls.mask_text(item) for item in value]
            elif isinstance(value, str):
                masked[key] = cls.mask_text(value)
            else:
                masked[key] = value

        return masked


class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.
    Includes request_id from extra fields if available.
    Automatically masks sensitive PII data.
    """

    RESERVED = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'lineno', 'module', 'msecs', 'message',
        'pathname', 'process', 'processName', 'relativeCreated',
        'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
        'taskName', 'request_id',
    }

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(dt_timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': PIIMasker.mask_text(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if hasattr(record, 'request_id'):
            log_data['request_id'] = record.request_id

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': PIIMasker.mask_text(str(record.exc_info[1])),
                'traceback': [PIIMasker.mask_text(line) for line in traceback.format_exception(*record.exc_info)],
            }

        # Add any extra fields
        for key, value in record.__dict__.items():
            if key in self.RESERVED or key.startswith('_'):
                continue
            try:
                if isinstance(value, dict):
                    masked_value = PIIMasker.mask_dict(value)
                elif isinstance(value, str):
                    masked_value = PIIMasker.mask_text(value)
                else:
                    masked_value = value

                json.dumps(masked_value)  # Test if serializable
                log_data[key] = masked_value
            except (TypeError, ValueError):
                log_data[key] = PIIMasker.mask_text(str(value))

        return json.dumps(log_data)


class SecurityLogger:
    """
    Centralized logging for endpoint security events.

    Events go to the ``security`` logger with structured data. Critical
    events (misconfigured endpoint security, failing identity lookups) are
    also sent to Sentry for alerting.
    """

    CRITICAL_EVENTS = {
        'ambiguous_security_annotation',
        'identity_lookup_failed',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', exc_info=False, **context):
        """
        Log a security event with structured data.

        Args:
            event_type: Type of security event (e.g., 'access_denied')
            level: Log level ('info', 'warning', 'error', 'critical')
            exc_info: Attach the exception being handled, if any
            **context: Additional context data (view, operation, path, etc.)

        Example:
            >>> SecurityLogger.log_event(
            ...     'access_denied',
            ...     view='apps.orders.views.OrderViewSet',
            ...     operation='destroy',
            ...     policy='deny',
            ... )
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'timestamp': timezone.now().isoformat(),
        }
        log_data.update(context)
        log_data = PIIMasker.mask_dict(log_data)

        log_method = getattr(logger, level, logger.warning)
        log_method(
            f"Security event: {event_type}",
            extra=log_data,
            exc_info=exc_info
        )

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
                extras=log_data
            )

    @staticmethod
    def log_access_denied(request, policy: str, reason: str, view: str = None, operation: str = None):
        """
        Log a request rejected by an endpoint policy.

        Args:
            request: The request that was rejected
            policy: Resolved policy that rejected it (e.g. 'deny', 'require_roles(admin)')
            reason: Why the policy rejected the caller
            view: Dotted name of the view class
            operation: Handler the request was routed to
        """
        user = getattr(request, 'user', None)
        SecurityLogger.log_event(
            'access_denied',
            level='warning',
            policy=policy,
            reason=reason,
            view=view,
            operation=operation,
            user_id=str(user.pk) if user is not None and getattr(user, 'pk', None) is not None else None,
            method=getattr(request, 'method', None),
            path=getattr(request, 'path', None),
            ip_address=request.META.get('REMOTE_ADDR') if hasattr(request, 'META') else None,
            request_id=getattr(request, 'request_id', None),
        )

    @staticmethod
    def log_ambiguous_annotation(placement: str, annotations):
        """
        Log a view or handler carrying more than one security annotation.

        Args:
            placement: View class or "view:handler" the annotations are declared on
            annotations: The conflicting annotations
        """
        SecurityLogger.log_event(
            'ambiguous_security_annotation',
            level='error',
            placement=placement,
            annotations=[repr(a) for a in annotations],
        )

    @staticmethod
    def log_identity_lookup_failed(request, lookup: str):
        """
        Log an identity provider failure; the caller is treated as
        unauthenticated. Must be called from inside the ``except`` block.

        Args:
            request: The request being checked
            lookup: Which lookup failed ('is_authenticated' or 'has_role')
        """
        SecurityLogger.log_event(
            'identity_lookup_failed',
            level='error',
            exc_info=True,
            lookup=lookup,
            path=getattr(request, 'path', None),
            request_id=getattr(request, 'request_id', None),
        )
