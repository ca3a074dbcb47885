"""
Authentication views.

Register, login, token refresh/logout, password reset and the
role-aware profile endpoint.  Login and registration hand out a
simplejwt access/refresh pair (see ``care.authentication``).
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from care.authentication import issue_tokens
from care.models import User
from care.serializers.auth import (
    LoginSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
)
from care.services.accounts import (
    profile_payload,
    register_user,
    role_profile,
    update_profile,
    user_payload,
)

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    user = register_user(
        email=v['email'],
        password=v['password'],
        role=v['userType'],
        name=v['name'],
        phone=v['phone'],
        emergency_contact=v.get('emergencyContact'),
    )
    return Response({'success': True, **issue_tokens(user), 'user': user_payload(user)}, status=201)

register_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Email/password login.  The role always comes from the stored user."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']

    user = authenticate(request, username=email, password=s.validated_data['password'])
    if not user:
        logger.warning('login failed email=%s ip=%s', email, request.META.get('REMOTE_ADDR'))
        return Response({'error': 'Invalid email or password'}, status=400)

    logger.info('login ok user=%s role=%s', user.id, user.role)
    return Response({'success': True, **issue_tokens(user), 'user': user_payload(user)}, status=200)

# ScopedRateThrottle reads throttle_scope from the view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Return a new access token from a refresh token."""
    refresh = request.data.get('refreshToken') or request.data.get('refresh')
    s = TokenRefreshSerializer(data={'refresh': refresh})
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    data = {'success': True, 'token': s.validated_data['access']}
    if 'refresh' in s.validated_data:
        data['refreshToken'] = s.validated_data['refresh']
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding one for the caller."""
    refresh = request.data.get('refreshToken') or request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as e:
            raise InvalidToken(e.args[0])
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    logger.info('logout user=%s blacklisted=%s', request.user.id, count)
    return Response({'success': True, 'blacklisted': count})


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_password_view(request):
    s = ResetPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    user = User.objects.filter(email__iexact=v['email']).first()
    if not user:
        return Response({'error': 'User not found'}, status=400)
    if not user.check_password(v['currentPassword']):
        return Response({'error': 'Current password is incorrect'}, status=400)
    user.set_password(v['newPassword'])
    user.save(update_fields=['password'])
    logger.info('password reset user=%s', user.id)
    return Response({'success': True, 'message': 'Password reset successfully'})

reset_password_view.cls.throttle_scope = 'login'


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    user = request.user
    if request.method == 'GET':
        return Response({'success': True, 'profile': profile_payload(user, role_profile(user))})

    s = ProfileUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile = update_profile(user, s.validated_data)
    logger.info('profile updated user=%s fields=%s', user.id, sorted(s.validated_data))
    return Response({'success': True, 'profile': profile_payload(user, profile)})
