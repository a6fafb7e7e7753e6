from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from bizsuite.core.utils import create_audit_log, get_request_business, get_business_object
from .models import Template, Website, Order
from .serializers import (
    TemplateSerializer, WebsiteSerializer,
    OrderSerializer, OrderCreateSerializer, OrderStatusSerializer,
)
from .services import place_order, update_order_status


# Template views (public)
@api_view(['GET'])
@permission_classes([AllowAny])
def template_list(request):
    """List website templates"""
    queryset = Template.objects.all()
    category = request.query_params.get('category', None)
    if category:
        queryset = queryset.filter(category=category)
    return Response(TemplateSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def template_detail(request, pk):
    template = get_object_or_404(Template, pk=pk)
    return Response(TemplateSerializer(template).data)


# Website views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def website_list_create(request):
    """List the business's websites or create one from a template"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Website.objects.filter(business=business).select_related('template')
        return Response(WebsiteSerializer(queryset, many=True).data)

    serializer = WebsiteSerializer(data=request.data)
    if serializer.is_valid():
        website = serializer.save(business=business)
        create_audit_log(
            request=request,
            action='create',
            model_name='Website',
            object_id=str(website.id),
            object_name=website.name,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def website_detail(request, pk):
    """Retrieve or update a website"""
    website = get_business_object(Website.objects.select_related('template'), request, pk, label='Website')

    if request.method == 'GET':
        return Response(WebsiteSerializer(website).data)

    serializer = WebsiteSerializer(website, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders or place one on behalf of a customer"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Order.objects.filter(business=business)
        status_filter = request.query_params.get('status', None)
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return Response(OrderSerializer(queryset, many=True).data)

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order = place_order(business, user=request.user, **serializer.validated_data)
    create_audit_log(
        request=request,
        action='order_create',
        model_name='Order',
        object_id=str(order.id),
        object_name=order.customer_name,
        object_reference=f'Order #{order.id}',
        changes={'total': str(order.total)},
    )
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    order = get_business_object(Order.objects.all(), request, pk, label='Order')
    return Response(OrderSerializer(order).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def order_status(request, pk):
    """Move an order through its lifecycle"""
    order = get_business_object(Order.objects.all(), request, pk, label='Order')
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'message': 'Invalid status', **serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    old_status = order.status
    order = update_order_status(order, serializer.validated_data['status'])
    create_audit_log(
        request=request,
        action='status_change',
        model_name='Order',
        object_id=str(order.id),
        object_reference=f'Order #{order.id}',
        changes={'status': {'old': old_status, 'new': order.status}},
    )
    return Response(OrderSerializer(order).data)
