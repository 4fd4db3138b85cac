"""
Identity collaborator

Credentials are verified upstream (API gateway / auth service), which
forwards the caller's email in a trusted header. This layer only resolves
that identity to a User.
"""
import logging

from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission

from apps.shopcore.models import User

logger = logging.getLogger(__name__)


class TrustedHeaderAuthentication(BaseAuthentication):
    """
    Authenticate requests from the identity header set by the gateway.
    """

    def authenticate(self, request):
        header = 'HTTP_' + settings.IDENTITY_HEADER.upper().replace('-', '_')
        email = request.META.get(header)
        if not email:
            return None

        user = User.objects.filter(email__iexact=email.strip()).first()
        if user is None:
            logger.warning(f"Unknown identity in {settings.IDENTITY_HEADER}: {email}")
            raise exceptions.AuthenticationFailed("Unknown user identity")
        return (user, None)

    def authenticate_header(self, request):
        return settings.IDENTITY_HEADER


class IsAdminTier(BasePermission):
    """Allows access only to ADMIN-tier users."""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and getattr(user, 'is_admin', False))
