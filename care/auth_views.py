"""
Authentication views: register, login, logout and the current user.

API calls authenticate with ``Authorization: Bearer <token>`` where the
token is the DRF auth token issued here.  A simplejwt access/refresh
pair is issued alongside it; logout deletes the auth token and
blacklists the user's outstanding refresh tokens.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from care.serializers.auth import LoginSerializer, RegisterSerializer
from care.serializers.people import UserSerializer, profile_data
from care.services.accounts import create_account
from care.services.audit import log_action
from care.views.common import ok

logger = logging.getLogger(__name__)


def _session_payload(user) -> dict:
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'user': UserSerializer(user).data,
        'profile': profile_data(user),
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    user = create_account(role=data.pop('role'), **data)
    return ok(_session_payload(user), message='User registered successfully', status=201)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """E-mail and password login.  The role always comes from the account."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']

    user = authenticate(request, username=email, password=s.validated_data['password'])
    if user is None:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email, 'ip': request.META.get('REMOTE_ADDR')})
        raise AuthenticationFailed('Invalid credentials')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    return ok(_session_payload(user), message='Login successful')

# ScopedRateThrottle reads the scope from the view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Invalidate the auth token and blacklist refresh tokens.

    With ``refresh`` in the body only that token is blacklisted; without
    it every outstanding refresh token of the user is.
    """
    user = request.user
    Token.objects.filter(user=user).delete()

    refresh = request.data.get('refresh')
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            logger.info('logout with unusable refresh token for user %s: %s', user.pk, e)
    else:
        for outstanding in OutstandingToken.objects.filter(user=user):
            BlacklistedToken.objects.get_or_create(token=outstanding)

    log_action(user=user, action='logout', object_type='user', object_id=user.pk)
    return ok(message='Logged out successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user = request.user
    return ok({'user': UserSerializer(user).data, 'profile': profile_data(user)})
