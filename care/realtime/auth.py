"""
WebSocket authentication with the same bearer tokens as the REST API.

Browsers cannot set headers on a WebSocket handshake, so the token is
also accepted as ``?token=<key>`` in the query string.
"""
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework.authtoken.models import Token


def _token_from_scope(scope):
    for name, value in scope.get("headers", []):
        if name == b"authorization":
            parts = value.decode("latin-1").split()
            if len(parts) == 2 and parts[0].lower() == "bearer":
                return parts[1]
    query = parse_qs(scope.get("query_string", b"").decode())
    values = query.get("token")
    return values[0] if values else None


def _user_for_key(key):
    token = Token.objects.select_related("user").filter(key=key).first()
    if token is None or not token.user.is_active:
        return AnonymousUser()
    return token.user


class BearerTokenAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        key = _token_from_scope(scope)
        scope["user"] = await sync_to_async(_user_for_key)(key) if key else AnonymousUser()
        return await super().__call__(scope, receive, send)
