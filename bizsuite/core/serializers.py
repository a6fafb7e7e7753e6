from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from rest_framework import serializers

from .models import Business, User, AuditLog


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = ['id', 'name', 'email', 'logo_url', 'chatbot_settings', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Business name must be at least 2 characters")
        return value

    def validate_chatbot_settings(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Chatbot settings must be an object")
        return value


class UserSerializer(serializers.ModelSerializer):
    business = BusinessSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'business',
                  'is_active', 'is_staff', 'created_at', 'updated_at']
        read_only_fields = ['is_staff', 'created_at', 'updated_at']


class RegisterSerializer(serializers.Serializer):
    """Creates a business together with its owner account"""
    username = serializers.CharField(min_length=3, max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6, validators=[validate_password])
    business_name = serializers.CharField(max_length=200)
    first_name = serializers.CharField(required=False, allow_blank=True, default='')
    last_name = serializers.CharField(required=False, allow_blank=True, default='')
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate_username(self, value):
        value = value.strip()
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("Username already exists")
        return value

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists() or Business.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already registered")
        return value

    def validate_business_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Business name must be at least 2 characters")
        return value

    def create(self, validated_data):
        with transaction.atomic():
            business = Business.objects.create(
                name=validated_data['business_name'],
                email=validated_data['email'],
            )
            user = User.objects.create_user(
                username=validated_data['username'],
                email=validated_data['email'],
                password=validated_data['password'],
                first_name=validated_data.get('first_name') or '',
                last_name=validated_data.get('last_name') or '',
                phone=validated_data.get('phone'),
                business=business,
                is_active=True,
            )
        return user


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']
