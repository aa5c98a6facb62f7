"""Response envelope, pagination and role checks shared by the API views."""
from django.conf import settings
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from care.services.scope import VisibilityScope

STAFF_ROLES = frozenset({'admin', 'doctor'})


def ok(data=None, *, message=None, status=200):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return Response(body, status=status)


def paginate(queryset, query: dict, serializer_class) -> dict:
    page = query.get('page') or 1
    page_size = query.get('page_size') or settings.CLINIC_PAGE_SIZE
    total = queryset.count()
    start = (page - 1) * page_size
    items = serializer_class(queryset[start:start + page_size], many=True).data
    return {'items': items, 'total': total, 'page': page, 'page_size': page_size}


def scope_for(request) -> VisibilityScope:
    """The caller's visibility scope, computed once per request."""
    scope = getattr(request, '_visibility_scope', None)
    if scope is None:
        scope = VisibilityScope.for_user(request.user)
        request._visibility_scope = scope
    return scope


def role_of(request):
    return getattr(request.user, 'role', None)


def require_role(request, roles, message):
    if role_of(request) not in roles:
        raise PermissionDenied(message)


def own_doctor_profile(request):
    """The caller's doctor profile; 403 when the caller has none."""
    profile = getattr(request.user, 'doctor_profile', None)
    if profile is None:
        raise PermissionDenied('No doctor profile is associated with this account')
    return profile


def upcoming_limit() -> int:
    return settings.CLINIC_UPCOMING_LIMIT
