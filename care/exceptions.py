"""
Error taxonomy and the unified API exception handler.

Business-rule violations are raised from the service layer as
:class:`BusinessRuleViolation` subclasses and reach the client as a single
message with HTTP 422.  Field validation errors keep their per-field shape
under ``errors``.  Every response leaves in the same envelope::

    {"success": false, "message": "...", "errors": {"field": ["..."]}}
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class BusinessRuleViolation(exceptions.APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'The request violates a business rule.'
    default_code = 'business_rule'


class PastBooking(BusinessRuleViolation):
    default_detail = 'Cannot schedule appointments in the past'
    default_code = 'past_booking'


class SlotTaken(BusinessRuleViolation):
    default_detail = 'The doctor already has an appointment at this time'
    default_code = 'slot_taken'


class InvalidTransition(BusinessRuleViolation):
    default_code = 'invalid_transition'


class UnderageGuardian(BusinessRuleViolation):
    default_detail = 'Guardian must be 18 years or older'
    default_code = 'underage_guardian'


class DeleteBlocked(BusinessRuleViolation):
    default_code = 'delete_blocked'


def _messages(detail):
    if isinstance(detail, list):
        return [str(d) for d in detail]
    if isinstance(detail, dict):
        return {k: _messages(v) for k, v in detail.items()}
    return [str(detail)]


def api_exception_handler(exc, context):
    if isinstance(exc, Http404):
        exc = exceptions.NotFound(str(exc) or 'Not found')
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied(str(exc) or None)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', view.__class__.__name__ if view else 'view')
        return Response({'success': False, 'message': 'Internal server error'}, status=500)

    if isinstance(exc, exceptions.ValidationError):
        errors = _messages(exc.detail)
        if not isinstance(errors, dict):
            errors = {'non_field_errors': errors}
        return Response(
            {'success': False, 'message': 'Validation failed', 'errors': errors},
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        resp.status_code = status.HTTP_401_UNAUTHORIZED

    detail = exc.detail if isinstance(exc, exceptions.APIException) else resp.data
    message = detail if isinstance(detail, str) else str(detail)
    return Response({'success': False, 'message': message}, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    if 'WWW-Authenticate' in resp:
        headers['WWW-Authenticate'] = resp['WWW-Authenticate']
    if 'Retry-After' in resp:
        headers['Retry-After'] = resp['Retry-After']
    return headers
