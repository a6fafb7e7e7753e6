from rest_framework import serializers

from .models import Contact


class ContactSerializer(serializers.ModelSerializer):
    transaction_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Contact
        fields = ['id', 'contact_type', 'name', 'business_name', 'email', 'phone', 'address',
                  'avatar_url', 'notes', 'is_active', 'transaction_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Name must be at least 2 characters")
        return value

    def validate_phone(self, value):
        value = value.strip()
        if value and not all(ch.isdigit() or ch in '+-() ' for ch in value):
            raise serializers.ValidationError("Phone number contains invalid characters")
        return value
