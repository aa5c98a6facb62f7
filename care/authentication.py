"""
Custom authentication backend for token-based auth.

This module defines a subclass of Django REST framework's
``TokenAuthentication`` that reads the token from an
``Authorization: Bearer <key>`` header.  Keeping it separate from any view
definitions avoids circular imports when the REST framework imports
authentication classes during initialization.
"""
from __future__ import annotations

from rest_framework import authentication


class BearerTokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Bearer`` keyword.

    Tokens are issued at login/registration and deleted at logout, so a
    missing token row means the session has ended.
    """

    keyword = 'Bearer'
