from django.db.models import Q, Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bizsuite.core.utils import create_audit_log, get_request_business, get_business_object
from .models import Contact
from .serializers import ContactSerializer


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def contact_list_create(request):
    """List all contacts or create a new contact"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Contact.objects.filter(business=business).annotate(transaction_count=Count('transactions'))

        contact_type = request.query_params.get('type', None)
        if contact_type:
            queryset = queryset.filter(contact_type=contact_type)

        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(business_name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )

        is_active = request.query_params.get('is_active', None)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))

        serializer = ContactSerializer(queryset.order_by('name'), many=True)
        return Response(serializer.data)

    serializer = ContactSerializer(data=request.data)
    if serializer.is_valid():
        contact = serializer.save(business=business)
        create_audit_log(
            request=request,
            action='create',
            model_name='Contact',
            object_id=str(contact.id),
            object_name=contact.name,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def contact_detail(request, pk):
    """Retrieve, update or delete a contact"""
    contact = get_business_object(Contact.objects.all(), request, pk, label='Contact')

    if request.method == 'GET':
        return Response(ContactSerializer(contact).data)

    elif request.method in ('PUT', 'PATCH'):
        serializer = ContactSerializer(contact, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Contact',
                object_id=str(contact.id),
                object_name=contact.name,
                changes={'fields': sorted(request.data.keys())},
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE: contacts with transaction history are kept but deactivated
    if contact.transactions.exists():
        contact.is_active = False
        contact.save(update_fields=['is_active', 'updated_at'])
        create_audit_log(
            request=request,
            action='status_change',
            model_name='Contact',
            object_id=str(contact.id),
            object_name=contact.name,
            changes={'is_active': False},
        )
        return Response({
            'message': 'Contact has transactions and was deactivated instead of deleted',
            'contact': ContactSerializer(contact).data,
        }, status=status.HTTP_200_OK)

    contact_id = contact.id
    contact_name = contact.name
    contact.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Contact',
        object_id=str(contact_id),
        object_name=contact_name,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)
