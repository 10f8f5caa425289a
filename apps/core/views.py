"""
Health check and authentication views.

Health:
    GET /health/                - Run all health checks
    GET /health/<check_name>/   - Run one check
    GET /livez/                 - Liveness check
    GET /readyz/                - Readiness check (database)
    GET /metrics/               - Prometheus metrics (apps.core.metrics)

Auth (mounted at /api/auth/):
    POST /login/, POST /refresh/, GET|PATCH /me/, POST /logout/
"""

import logging

from django.conf import settings
from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator
from django.utils import timezone

from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.tokens import RefreshToken

from apps.core.exceptions import MissingFieldError, ValidationError
from apps.core.observability import health_checker, HealthStatus
from apps.core.serializers import (
    CustomTokenObtainPairSerializer,
    StaffProfileUpdateSerializer,
    UserSerializer,
    UserUpdateSerializer,
)

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name='dispatch')
class HealthCheckView(View):
    """
    Health check endpoint.

    GET /health/ - Run all health checks
    GET /health/<check_name>/ - Run specific health check
    """

    def get(self, request, check_name=None):
        """Run health checks."""
        if check_name:
            result = health_checker.check(check_name)
            status_code = 200 if result.status == HealthStatus.HEALTHY else 503
            return JsonResponse(result.to_dict(), status=status_code)

        results = health_checker.check_all()
        results["version"] = getattr(settings, 'VERSION', None)
        status_code = 503 if results["status"] == HealthStatus.UNHEALTHY.value else 200
        return JsonResponse(results, status=status_code)


@method_decorator(csrf_exempt, name='dispatch')
class LivenessView(View):
    """
    Kubernetes liveness endpoint.

    Returns 200 if the application is running.
    """

    def get(self, request):
        return JsonResponse({"status": "alive"})


@method_decorator(csrf_exempt, name='dispatch')
class ReadinessView(View):
    """
    Kubernetes readiness endpoint.

    Returns 200 if the database is reachable.
    """

    def get(self, request):
        db_check = health_checker.check("database")

        if db_check.status == HealthStatus.HEALTHY:
            return JsonResponse({"status": "ready"})
        return JsonResponse({
            "status": "not_ready",
            "reason": db_check.message,
        }, status=503)


# =============================================================================
# JWT Authentication Views
# =============================================================================

class CustomTokenObtainPairView(TokenObtainPairView):
    """
    Login endpoint that returns JWT tokens.

    POST /api/auth/login/
    Body: {"username": "...", "password": "..."}
    Returns: {"access": "...", "refresh": "...", "user": {...}}
    """
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [AllowAny]


class CustomTokenRefreshView(TokenRefreshView):
    """
    Token refresh endpoint.

    POST /api/auth/refresh/
    Body: {"refresh": "..."}
    Returns: {"access": "..."}
    """
    permission_classes = [AllowAny]


class CurrentUserView(APIView):
    """
    Get or update the current authenticated user.

    GET /api/auth/me/ - Current user with role and profile
    PATCH /api/auth/me/ - Update name, email and profile preferences
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        user_serializer = UserUpdateSerializer(request.user, data=request.data, partial=True)
        user_serializer.is_valid(raise_exception=True)

        profile = getattr(request.user, 'staff_profile', None)
        profile_data = request.data.get('profile') or {}
        profile_serializer = None
        if profile is not None and profile_data:
            profile_serializer = StaffProfileUpdateSerializer(profile, data=profile_data, partial=True)
            profile_serializer.is_valid(raise_exception=True)

        user_serializer.save()
        if profile_serializer is not None:
            profile_serializer.save()
        if profile is not None:
            profile.last_active_at = timezone.now()
            profile.save(update_fields=['last_active_at'])

        return Response(UserSerializer(request.user).data)


class LogoutView(APIView):
    """
    Logout endpoint - blacklist refresh token.

    POST /api/auth/logout/
    Body: {"refresh": "..."}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if not refresh_token:
            raise MissingFieldError("Refresh token required", field='refresh')
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as e:
            raise ValidationError(str(e), field='refresh')

        logger.info(f"User {request.user.pk} logged out")
        return Response({"message": "Successfully logged out"})
