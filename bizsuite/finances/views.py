import logging

from django.db import transaction as db_transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bizsuite.core.utils import create_audit_log, get_request_business, get_business_object, paginate
from . import services
from .filters import TransactionFilter
from .models import AccountCategory, Account, Transaction, TransactionVersion, Transfer
from .serializers import (
    AccountCategorySerializer, AccountSerializer,
    TransactionSerializer, TransactionListSerializer, TransactionVersionSerializer,
    TransferSerializer,
)

logger = logging.getLogger(__name__)


def _transaction_queryset():
    return Transaction.objects.select_related('account', 'contact').prefetch_related('items', 'items__product')


# AccountCategory views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def account_category_list_create(request):
    """List account categories or create a new one"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = AccountCategory.objects.filter(business=business).annotate(account_count=Count('accounts'))
        category_type = request.query_params.get('type', None)
        if category_type:
            queryset = queryset.filter(type=category_type)
        return Response(AccountCategorySerializer(queryset, many=True).data)

    serializer = AccountCategorySerializer(data=request.data)
    if serializer.is_valid():
        category = serializer.save(business=business, is_system=False)
        create_audit_log(
            request=request,
            action='create',
            model_name='AccountCategory',
            object_id=str(category.id),
            object_name=category.name,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def account_category_detail(request, pk):
    """Retrieve, update or delete an account category"""
    category = get_business_object(AccountCategory.objects.all(), request, pk, label='Category')

    if request.method == 'GET':
        return Response(AccountCategorySerializer(category).data)

    if category.is_system:
        return Response({'message': 'System categories cannot be modified'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        serializer = AccountCategorySerializer(category, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if category.accounts.exists():
        return Response(
            {'message': 'Cannot delete a category that has accounts. Move or delete the accounts first.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    category_id = category.id
    category_name = category.name
    category.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='AccountCategory',
        object_id=str(category_id),
        object_name=category_name,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


# Account views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def account_list_create(request):
    """List accounts or create a new account"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Account.objects.filter(business=business).select_related('category')
        category = request.query_params.get('category', None)
        if category:
            queryset = queryset.filter(category_id=category)
        is_active = request.query_params.get('is_active', None)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))
        return Response(AccountSerializer(queryset, many=True).data)

    serializer = AccountSerializer(data=request.data, context={'business': business})
    if serializer.is_valid():
        account = serializer.save(business=business)
        create_audit_log(
            request=request,
            action='create',
            model_name='Account',
            object_id=str(account.id),
            object_name=account.name,
            changes={'initial_balance': str(account.initial_balance)},
        )
        return Response(AccountSerializer(account).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def account_detail(request, pk):
    """Retrieve, update or delete an account"""
    account = get_business_object(Account.objects.select_related('category'), request, pk, label='Account')

    if request.method == 'GET':
        return Response(AccountSerializer(account).data)

    elif request.method == 'PATCH':
        serializer = AccountSerializer(account, data=request.data, partial=True, context={'business': account.business})
        if serializer.is_valid():
            account = serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Account',
                object_id=str(account.id),
                object_name=account.name,
                changes={'fields': sorted(request.data.keys())},
            )
            return Response(AccountSerializer(account).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if account.transactions.exists():
        return Response(
            {'message': 'Cannot delete an account that has transactions. Deactivate it instead.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    account_id = account.id
    account_name = account.name
    account.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Account',
        object_id=str(account_id),
        object_name=account_name,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def account_sync_balances(request):
    """Recompute every account balance of the caller's business"""
    business = get_request_business(request)
    results = services.sync_business_balances(business)
    changed = [r for r in results if r['changed']]
    logger.info(f"Synced {len(results)} account balances for business {business.id} ({len(changed)} changed)")
    return Response({
        'message': f'Synchronized {len(results)} account(s)',
        'updated': len(changed),
        'accounts': [
            {**r, 'old_balance': str(r['old_balance']), 'new_balance': str(r['new_balance'])}
            for r in results
        ],
    })


# Transaction views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """List transactions (paginated) or create a new transaction"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Transaction.objects.filter(business=business).select_related('account')

        # Use django-filter for filtering
        filterset = TransactionFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('-date', '-id')

        page_obj, meta = paginate(queryset, request)
        serializer = TransactionListSerializer(page_obj, many=True)
        return Response({**meta, 'results': serializer.data})

    serializer = TransactionSerializer(data=request.data, context={'business': business, 'request': request})
    if serializer.is_valid():
        with db_transaction.atomic():
            txn = serializer.save(business=business, created_by=request.user, updated_by=request.user)
            services.record_version(txn, request.user, 'create', 'Transaction created')
        create_audit_log(
            request=request,
            action='create',
            model_name='Transaction',
            object_id=str(txn.id),
            object_name=txn.description or txn.category,
            object_reference=txn.document_number or None,
            changes={'type': txn.type, 'amount': str(txn.amount), 'status': txn.status},
        )
        return Response(TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve, update or delete a transaction"""
    txn = get_business_object(_transaction_queryset(), request, pk, label='Transaction')

    if request.method == 'GET':
        return Response(TransactionSerializer(txn).data)

    elif request.method in ('PUT', 'PATCH'):
        if txn.transfer_id:
            return Response({'message': 'Transfer entries are managed through their transfer'}, status=status.HTTP_400_BAD_REQUEST)
        old_amount = txn.amount
        old_status = txn.status
        serializer = TransactionSerializer(
            txn,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'business': txn.business, 'request': request},
        )
        if serializer.is_valid():
            with db_transaction.atomic():
                txn = serializer.save(updated_by=request.user)
                services.record_version(txn, request.user, 'update', 'Transaction updated')
            create_audit_log(
                request=request,
                action='update',
                model_name='Transaction',
                object_id=str(txn.id),
                object_name=txn.description or txn.category,
                object_reference=txn.document_number or None,
                changes={
                    'amount': {'old': str(old_amount), 'new': str(txn.amount)},
                    'status': {'old': old_status, 'new': txn.status},
                },
            )
            return Response(TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if txn.transfer_id:
        return Response({'message': 'Delete the transfer instead of one of its entries'}, status=status.HTTP_400_BAD_REQUEST)
    txn_id = txn.id
    reference = txn.document_number or None
    snapshot = services.snapshot_transaction(txn)
    txn.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Transaction',
        object_id=str(txn_id),
        object_reference=reference,
        changes={'snapshot': snapshot},
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_receive(request, pk):
    """Record received quantities for bill lines"""
    txn = get_business_object(_transaction_queryset(), request, pk, label='Transaction')
    txn = services.receive_items(txn, request.data.get('items'), user=request.user)
    create_audit_log(
        request=request,
        action='receive',
        model_name='Transaction',
        object_id=str(txn.id),
        object_reference=txn.document_number or None,
        changes={'items': request.data.get('items'), 'status': txn.status},
    )
    return Response(TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_payment(request, pk):
    """Record a payment against a bill or invoice"""
    txn = get_business_object(_transaction_queryset(), request, pk, label='Transaction')
    amount = request.data.get('amount')
    txn = services.record_payment(txn, amount, user=request.user)
    create_audit_log(
        request=request,
        action='payment',
        model_name='Transaction',
        object_id=str(txn.id),
        object_reference=txn.document_number or None,
        changes={'amount': str(amount), 'payment_received': str(txn.payment_received), 'status': txn.status},
    )
    return Response(TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_cancel(request, pk):
    """Cancel a transaction; cancelled transactions do not count toward balances"""
    txn = get_business_object(_transaction_queryset(), request, pk, label='Transaction')
    if txn.transfer_id:
        return Response({'message': 'Delete the transfer instead of cancelling one of its entries'}, status=status.HTTP_400_BAD_REQUEST)
    old_status = txn.status
    txn = services.cancel_transaction(txn, user=request.user, reason=request.data.get('reason', ''))
    create_audit_log(
        request=request,
        action='status_change',
        model_name='Transaction',
        object_id=str(txn.id),
        object_reference=txn.document_number or None,
        changes={'status': {'old': old_status, 'new': 'cancelled'}},
    )
    return Response(TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_versions(request, pk):
    """Version history, newest first"""
    txn = get_business_object(Transaction.objects.all(), request, pk, label='Transaction')
    versions = TransactionVersion.objects.filter(transaction=txn).select_related('user').order_by('-version')
    return Response(TransactionVersionSerializer(versions, many=True).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def transaction_version_important(request, pk, version_id):
    """Flag or unflag a version as important"""
    txn = get_business_object(Transaction.objects.all(), request, pk, label='Transaction')
    version = get_object_or_404(TransactionVersion, pk=version_id, transaction=txn)

    important = request.data.get('important')
    if not isinstance(important, bool):
        return Response({'message': 'important must be true or false'}, status=status.HTTP_400_BAD_REQUEST)

    version.important = important
    version.save(update_fields=['important'])
    return Response(TransactionVersionSerializer(version).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_version_restore(request, pk, version_id):
    """Restore a transaction to an earlier version"""
    txn = get_business_object(Transaction.objects.all(), request, pk, label='Transaction')
    version = get_object_or_404(TransactionVersion, pk=version_id, transaction=txn)

    txn = services.restore_version(txn, version, request.user)
    create_audit_log(
        request=request,
        action='restore',
        model_name='Transaction',
        object_id=str(txn.id),
        object_reference=txn.document_number or None,
        changes={'restored_version': version.version},
    )
    return Response(TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data)


# Transfer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transfer_list_create(request):
    """List transfers or move money between two accounts"""
    business = get_request_business(request)

    if request.method == 'GET':
        queryset = Transfer.objects.filter(business=business).select_related('from_account', 'to_account')
        return Response(TransferSerializer(queryset, many=True).data)

    serializer = TransferSerializer(data=request.data, context={'business': business})
    if serializer.is_valid():
        data = serializer.validated_data
        transfer = services.create_transfer(
            business,
            data['from_account'],
            data['to_account'],
            data['amount'],
            on_date=data.get('date'),
            description=data.get('description', ''),
            reference=data.get('reference', ''),
            user=request.user,
        )
        create_audit_log(
            request=request,
            action='transfer',
            model_name='Transfer',
            object_id=str(transfer.id),
            object_name=f'{transfer.from_account.name} -> {transfer.to_account.name}',
            object_reference=transfer.reference or None,
            changes={'amount': str(transfer.amount)},
        )
        return Response(TransferSerializer(transfer).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def transfer_detail(request, pk):
    """Retrieve a transfer or delete it together with both entries"""
    transfer = get_business_object(Transfer.objects.select_related('from_account', 'to_account'), request, pk, label='Transfer')

    if request.method == 'GET':
        return Response(TransferSerializer(transfer).data)

    transfer_id = transfer.id
    amount = transfer.amount
    with db_transaction.atomic():
        transfer.transactions.all().delete()
        transfer.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Transfer',
        object_id=str(transfer_id),
        changes={'amount': str(amount)},
    )
    return Response(status=status.HTTP_204_NO_CONTENT)
