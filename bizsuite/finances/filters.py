import django_filters
from django.db.models import Q

from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    """Query-param filters for the transaction list"""
    type = django_filters.CharFilter(field_name='type', lookup_expr='exact')
    document_type = django_filters.CharFilter(field_name='document_type', lookup_expr='exact')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    account = django_filters.NumberFilter(field_name='account_id', lookup_expr='exact')
    contact = django_filters.NumberFilter(field_name='contact_id', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Transaction
        fields = ['type', 'document_type', 'status', 'account', 'contact', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(description__icontains=value) |
            Q(document_number__icontains=value) |
            Q(reference__icontains=value) |
            Q(contact_name__icontains=value) |
            Q(category__icontains=value)
        )
