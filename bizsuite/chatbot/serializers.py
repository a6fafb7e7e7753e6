from rest_framework import serializers

from bizsuite.storefront.serializers import OrderCreateSerializer
from .models import Conversation


class ConversationSerializer(serializers.ModelSerializer):
    message_count = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = ['id', 'customer_name', 'customer_email', 'messages', 'message_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_message_count(self, obj):
        return len(obj.messages or [])

    def validate_customer_name(self, value):
        return value.strip() or 'Guest'

    def validate_messages(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Messages must be a list")
        for entry in value:
            if not isinstance(entry, dict) or 'role' not in entry or 'content' not in entry:
                raise serializers.ValidationError("Each message needs a role and content")
        return value


class ChatMessageSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=2000, trim_whitespace=True)
    conversation_id = serializers.IntegerField(required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)


class ChatbotOrderSerializer(OrderCreateSerializer):
    conversation_id = serializers.IntegerField(required=False, allow_null=True)


class ChatbotSettingsSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False)
    welcome_message = serializers.CharField(max_length=500, required=False, allow_blank=True)
    enable_recommendations = serializers.BooleanField(required=False)
    allow_order_creation = serializers.BooleanField(required=False)
    enable_order_tracking = serializers.BooleanField(required=False)
    widget_position = serializers.ChoiceField(choices=['bottomRight', 'bottomLeft'], required=False)
