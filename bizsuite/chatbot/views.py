from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from bizsuite.core.models import Business
from bizsuite.core.utils import create_audit_log, get_request_business, get_business_object
from bizsuite.storefront.serializers import OrderSerializer
from bizsuite.storefront.services import place_order
from .models import Conversation
from .responder import generate_reply, get_chatbot_settings
from .serializers import (
    ConversationSerializer, ChatMessageSerializer,
    ChatbotOrderSerializer, ChatbotSettingsSerializer,
)


def _chat_message(role, content, **extra):
    return {'role': role, 'content': content, 'timestamp': timezone.now().isoformat(), **extra}


def _public_conversation(business, conversation_id):
    """Conversations reached through the public widget must belong to the business"""
    return Conversation.objects.filter(pk=conversation_id, business=business).first()


# Public chatbot endpoints
@api_view(['POST'])
@permission_classes([AllowAny])
def chat(request, business_id):
    """Handle one visitor message and return the assistant's reply"""
    business = get_object_or_404(Business, pk=business_id)
    serializer = ChatMessageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'message': 'Invalid data', 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    conversation_id = data.get('conversation_id')
    if conversation_id:
        conversation = _public_conversation(business, conversation_id)
        if conversation is None:
            return Response({'message': 'Conversation not found'}, status=status.HTTP_404_NOT_FOUND)
    else:
        conversation = Conversation.objects.create(
            business=business,
            customer_name=(data.get('customer_name') or '').strip() or 'Guest',
            customer_email=data.get('customer_email') or '',
            messages=[],
        )

    history = list(conversation.messages or [])
    reply = generate_reply(business, data['message'], history)
    bot_message = _chat_message(
        'assistant', reply['text'],
        product_recommendations=reply['product_recommendations'],
    )
    conversation.messages = history + [_chat_message('user', data['message']), bot_message]
    conversation.save(update_fields=['messages', 'updated_at'])

    return Response({'conversation_id': conversation.id, 'message': bot_message})


@api_view(['POST'])
@permission_classes([AllowAny])
def chatbot_order(request, business_id):
    """Place an order from the chat widget"""
    business = get_object_or_404(Business, pk=business_id)
    if not get_chatbot_settings(business).get('allow_order_creation'):
        return Response({'message': 'Ordering through the chatbot is disabled'}, status=status.HTTP_403_FORBIDDEN)

    serializer = ChatbotOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'message': 'Invalid data', 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    conversation_id = data.pop('conversation_id', None)

    conversation = None
    if conversation_id:
        conversation = _public_conversation(business, conversation_id)
        if conversation is None:
            return Response({'message': 'Conversation not found'}, status=status.HTTP_404_NOT_FOUND)

    order = place_order(business, from_chatbot=True, **data)
    create_audit_log(
        request=request,
        business=business,
        action='order_create',
        model_name='Order',
        object_id=str(order.id),
        object_name=order.customer_name,
        object_reference=f'Order #{order.id}',
        changes={'total': str(order.total), 'source': 'chatbot'},
    )

    if conversation is not None:
        conversation.messages = list(conversation.messages or []) + [
            _chat_message('assistant', f"Your order #{order.id} has been placed. Total: {order.total}"),
        ]
        conversation.save(update_fields=['messages', 'updated_at'])

    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def chatbot_widget(request, business_id):
    """Embed snippet for a business's website"""
    business = get_object_or_404(Business, pk=business_id)
    script_url = request.build_absolute_uri(f"{settings.STATIC_URL}chatbot/widget.js")
    chat_url = request.build_absolute_uri(reverse('chatbot-chat', args=[business.id]))
    position = get_chatbot_settings(business).get('widget_position')
    embed_code = (
        "<script>\n"
        "  (function() {\n"
        "    var script = document.createElement('script');\n"
        f"    script.src = '{script_url}';\n"
        "    script.async = true;\n"
        f"    script.dataset.businessId = '{business.id}';\n"
        f"    script.dataset.endpoint = '{chat_url}';\n"
        f"    script.dataset.position = '{position}';\n"
        "    document.head.appendChild(script);\n"
        "  })();\n"
        "</script>"
    )
    return Response({'embed_code': embed_code})


# Chatbot settings
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def chatbot_settings(request):
    """Read or update the assistant settings stored on the business"""
    business = get_request_business(request)

    if request.method == 'GET':
        return Response(get_chatbot_settings(business))

    serializer = ChatbotSettingsSerializer(data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    stored = business.chatbot_settings if isinstance(business.chatbot_settings, dict) else {}
    business.chatbot_settings = {**stored, **serializer.validated_data}
    business.save(update_fields=['chatbot_settings', 'updated_at'])
    create_audit_log(
        request=request,
        action='update',
        model_name='Business',
        object_id=str(business.id),
        object_name=business.name,
        changes={'chatbot_settings': sorted(serializer.validated_data.keys())},
    )
    return Response({'message': 'Chatbot settings updated', 'settings': get_chatbot_settings(business)})


# Conversation views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def conversation_list_create(request):
    """List conversations or record one manually"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Conversation.objects.filter(business=business)
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(customer_name__icontains=search) | Q(customer_email__icontains=search))
        return Response(ConversationSerializer(queryset, many=True).data)

    serializer = ConversationSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(business=business)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def conversation_detail(request, pk):
    conversation = get_business_object(Conversation.objects.all(), request, pk, label='Conversation')

    if request.method == 'GET':
        return Response(ConversationSerializer(conversation).data)

    serializer = ConversationSerializer(conversation, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
