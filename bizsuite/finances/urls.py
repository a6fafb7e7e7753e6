from django.urls import path
from .views import (
    account_category_list_create, account_category_detail,
    account_list_create, account_detail, account_sync_balances,
    transaction_list_create, transaction_detail,
    transaction_receive, transaction_payment, transaction_cancel,
    transaction_versions, transaction_version_important, transaction_version_restore,
    transfer_list_create, transfer_detail,
)

urlpatterns = [
    # Account categories
    path('account-categories/', account_category_list_create, name='account-category-list-create'),
    path('account-categories/<int:pk>/', account_category_detail, name='account-category-detail'),

    # Accounts
    path('accounts/', account_list_create, name='account-list-create'),
    path('accounts/sync-balances/', account_sync_balances, name='account-sync-balances'),
    path('accounts/<int:pk>/', account_detail, name='account-detail'),

    # Transactions and purchase bills
    path('transactions/', transaction_list_create, name='transaction-list-create'),
    path('transactions/<int:pk>/', transaction_detail, name='transaction-detail'),
    path('transactions/<int:pk>/receive/', transaction_receive, name='transaction-receive'),
    path('transactions/<int:pk>/payments/', transaction_payment, name='transaction-payment'),
    path('transactions/<int:pk>/cancel/', transaction_cancel, name='transaction-cancel'),
    path('transactions/<int:pk>/versions/', transaction_versions, name='transaction-versions'),
    path('transactions/<int:pk>/versions/<int:version_id>/important/', transaction_version_important, name='transaction-version-important'),
    path('transactions/<int:pk>/versions/<int:version_id>/restore/', transaction_version_restore, name='transaction-version-restore'),

    # Transfers
    path('transfers/', transfer_list_create, name='transfer-list-create'),
    path('transfers/<int:pk>/', transfer_detail, name='transfer-detail'),
]
