"""
Serializers for authentication and staff profiles.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import StaffProfile
from .permissions import get_user_role

User = get_user_model()


class StaffProfileSerializer(serializers.ModelSerializer):
    """Serializer for StaffProfile model."""

    class Meta:
        model = StaffProfile
        fields = [
            'id',
            'role',
            'language',
            'timezone',
            'last_active_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'role', 'created_at', 'updated_at', 'last_active_at']


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User with nested profile."""

    profile = StaffProfileSerializer(source='staff_profile', read_only=True)
    role = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'is_active',
            'date_joined',
            'last_login',
            'role',
            'profile',
        ]
        read_only_fields = ['id', 'date_joined', 'last_login', 'is_active']

    def get_role(self, user):
        role = get_user_role(user)
        return role.value if role else None


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom token serializer that includes user info in response.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)

        # Add custom claims
        token['username'] = user.username
        token['email'] = user.email
        role = get_user_role(user)
        if role is not None:
            token['role'] = role.value

        return token

    def validate(self, attrs):
        data = super().validate(attrs)

        # Add user data to response
        data['user'] = UserSerializer(self.user).data

        return data


class UserUpdateSerializer(serializers.ModelSerializer):
    """Serializer for updating user info."""

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email']


class StaffProfileUpdateSerializer(serializers.ModelSerializer):
    """Profile fields a staff member may change themselves; role is not one."""

    class Meta:
        model = StaffProfile
        fields = ['language', 'timezone']

    def validate_language(self, value):
        return value.strip().upper()
