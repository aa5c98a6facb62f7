"""
Role-scoped visibility.

:class:`VisibilityScope` is computed once per request from the authenticated
user and narrows every listing to the rows that user may see:

========  ===========================================================
admin     everything
doctor    rows whose doctor profile belongs to the caller
patient   rows whose patient profile belongs to the caller
guardian  rows whose patient's guardian profile belongs to the caller
========  ===========================================================

The restriction is applied after any caller-supplied filters and is a
plain AND, so query parameters can narrow a listing but never widen it.
Applying the same scope twice yields the same rows as applying it once.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db.models import Q, QuerySet
from rest_framework.exceptions import NotFound, PermissionDenied

from care.models import Role

APPOINTMENT = 'appointment'
HOME_VISIT = 'home_visit'
PRESCRIPTION = 'prescription'
EMERGENCY = 'emergency'
PATIENT = 'patient'

# kind -> role -> lookup path to the owning user's id
_OWNER_PATHS: dict[str, dict[str, str]] = {
    APPOINTMENT: {
        'doctor': 'doctor__user_id',
        'patient': 'patient__user_id',
        'guardian': 'patient__guardian__user_id',
    },
    HOME_VISIT: {
        'doctor': 'doctor__user_id',
        'patient': 'patient__user_id',
        'guardian': 'patient__guardian__user_id',
    },
    PRESCRIPTION: {
        'doctor': 'doctor__user_id',
        'patient': 'patient__user_id',
        'guardian': 'patient__guardian__user_id',
    },
    # An emergency carries its reporting guardian directly
    EMERGENCY: {
        'doctor': 'doctor__user_id',
        'patient': 'patient__user_id',
        'guardian': 'guardian__user_id',
    },
    PATIENT: {
        'doctor': 'doctor__user_id',
        'patient': 'user_id',
        'guardian': 'guardian__user_id',
    },
}


@dataclass(frozen=True)
class VisibilityScope:
    user_id: Optional[int]
    role: Optional[str]

    @classmethod
    def for_user(cls, user) -> 'VisibilityScope':
        if not (user and getattr(user, 'is_authenticated', False)):
            return cls(user_id=None, role=None)
        return cls(user_id=user.pk, role=getattr(user, 'role', None))

    @property
    def unrestricted(self) -> bool:
        return self.role == Role.ADMIN

    def predicate(self, kind: str) -> Q:
        """Return the restriction for ``kind`` as a ``Q`` object.

        An empty ``Q()`` means no restriction; an impossible predicate is
        returned for anonymous callers and unknown roles.
        """
        if kind not in _OWNER_PATHS:
            raise ValueError(f'unknown entity kind: {kind}')
        if self.unrestricted:
            return Q()
        path = _OWNER_PATHS[kind].get(self.role) if self.role else None
        if path is None or self.user_id is None:
            return Q(pk__in=[])
        return Q(**{path: self.user_id})

    def filter(self, queryset: QuerySet, kind: str) -> QuerySet:
        return queryset.filter(self.predicate(kind))

    def permits(self, obj, kind: str) -> bool:
        if self.unrestricted:
            return True
        return self.filter(type(obj).objects.filter(pk=obj.pk), kind).exists()

    def get_or_raise(self, queryset: QuerySet, kind: str, pk, *, label: str):
        """Fetch one row by ``pk``: 404 when absent, 403 when out of scope."""
        obj = queryset.filter(pk=pk).first()
        if obj is None:
            raise NotFound(f'{label} not found')
        if not self.permits(obj, kind):
            raise PermissionDenied(f'You are not allowed to access this {label.lower()}')
        return obj
