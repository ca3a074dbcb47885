"""
Bearer credential authentication.

The auth gate verifies ``Authorization: Bearer <jwt>`` and attaches the
caller (with its ``role``) to ``request.user``.  Keeping the class in its
own module gives settings a stable import path and avoids circular
imports when DRF loads authentication classes during initialisation.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken


class BearerAuthentication(JWTAuthentication):
    """simplejwt authentication with the role carried in the token.

    The role claim is informational for clients; authorisation always
    uses the role stored on the user row.
    """


def issue_tokens(user) -> dict:
    """Return a fresh access/refresh pair for ``user``."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['email'] = user.email
    return {
        'token': str(refresh.access_token),
        'refreshToken': str(refresh),
    }
