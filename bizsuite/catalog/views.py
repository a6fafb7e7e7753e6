import logging

from django.db import transaction
from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bizsuite.core.utils import create_audit_log, get_request_business, get_business_object
from .filters import ProductFilter
from .models import ProductCategory, Product
from .serializers import ProductCategorySerializer, ProductSerializer, ProductListSerializer

logger = logging.getLogger(__name__)


# ProductCategory views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List the business's product categories or create a new one"""
    business = get_request_business(request)

    if request.method == 'GET':
        categories = ProductCategory.objects.filter(business=business).annotate(product_count=Count('products'))
        serializer = ProductCategorySerializer(categories, many=True)
        return Response(serializer.data)

    serializer = ProductCategorySerializer(data=request.data, context={'business': business})
    if serializer.is_valid():
        category = serializer.save(business=business)
        create_audit_log(
            request=request,
            action='create',
            model_name='ProductCategory',
            object_id=str(category.id),
            object_name=category.name,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, rename or delete a product category"""
    category = get_business_object(ProductCategory.objects.all(), request, pk, label='Category')

    if request.method == 'GET':
        return Response(ProductCategorySerializer(category).data)

    elif request.method == 'PATCH':
        if category.is_default:
            return Response({'message': 'The default category cannot be renamed'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProductCategorySerializer(category, data=request.data, partial=True, context={'business': category.business})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE: products fall back to the default category
    if category.is_default:
        return Response({'message': 'The default category cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        default_category = ProductCategory.objects.default_for(category.business)
        moved = Product.objects.filter(category=category).update(category=default_category)
        category_name = category.name
        category_id = category.id
        category.delete()

    create_audit_log(
        request=request,
        action='delete',
        model_name='ProductCategory',
        object_id=str(category_id),
        object_name=category_name,
        changes={'products_moved': moved, 'moved_to': default_category.name},
    )
    logger.info(f"Deleted category {category_id}; moved {moved} products to '{default_category.name}'")
    return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products or create a new product"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Product.objects.filter(business=business).select_related('category')

        # Use django-filter for filtering
        filterset = ProductFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-is_featured', '-created_at')

        serializer = ProductListSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = ProductSerializer(data=request.data, context={'business': business})
    if serializer.is_valid():
        product = serializer.save(business=business)
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=str(product.id),
            object_name=product.name,
            object_reference=product.sku,
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_business_object(Product.objects.select_related('category'), request, pk, label='Product')

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)

    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(
            product,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'business': product.business},
        )
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Product',
                object_id=str(product.id),
                object_name=product.name,
                object_reference=product.sku,
                changes={'fields': sorted(request.data.keys())},
            )
            return Response(ProductSerializer(product).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    product_id = product.id
    product_name = product.name
    product.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Product',
        object_id=str(product_id),
        object_name=product_name,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)
