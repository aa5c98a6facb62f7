"""
Custom permission classes for role based access control.

These guard whole endpoints by role.  Row-level visibility is decided by
:class:`care.services.scope.VisibilityScope`, never here.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class HasRole(BasePermission):
    """Base class: allow users whose role is in ``roles``."""
    roles: frozenset = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in self.roles


class IsAdminRole(HasRole):
    """Allow access only to clinic administrators."""
    message = 'Only administrators can perform this action'
    roles = frozenset({'admin'})


class IsDoctorRole(HasRole):
    message = 'Only doctors can perform this action'
    roles = frozenset({'doctor'})


class IsGuardianRole(HasRole):
    message = 'Only guardians can report emergencies'
    roles = frozenset({'guardian'})


class IsClinicalStaff(HasRole):
    """Doctors or administrators."""
    message = 'Only doctors or administrators can perform this action'
    roles = frozenset({'admin', 'doctor'})


class ReadOnlyOrAdmin(BasePermission):
    """Any authenticated user may read; only administrators may write."""
    message = IsAdminRole.message

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) is not None
        return _role(request) == 'admin'


class ReadOnlyOrClinicalStaff(BasePermission):
    """Any authenticated user may read; doctors and administrators may write."""
    message = IsClinicalStaff.message

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) is not None
        return _role(request) in IsClinicalStaff.roles
