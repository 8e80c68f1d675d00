# sales/filters.py

"""
QUERY FILTERS (django-filter)

- SaleForReturnFilter: /api/returns/sales/
- ReturnHistoryFilter: /api/returns/history/
"""

from __future__ import annotations

import django_filters
from django.db.models import Q

from sales.models import Sale, SaleReturn


class SaleForReturnFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method="filter_search")
    date_from = django_filters.DateFilter(field_name="sale_date", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="sale_date", lookup_expr="date__lte")
    status = django_filters.ChoiceFilter(choices=Sale.STATUS_CHOICES)
    customer = django_filters.UUIDFilter(field_name="customer_id")

    class Meta:
        model = Sale
        fields = ["search", "date_from", "date_to", "status", "customer"]

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset

        return queryset.filter(
            Q(id__icontains=value)
            | Q(customer__name__icontains=value)
            | Q(customer__phone__icontains=value)
        )


class ReturnHistoryFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="return_date", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="return_date", lookup_expr="date__lte")
    status = django_filters.ChoiceFilter(choices=SaleReturn.STATUS_CHOICES)
    refund_method = django_filters.ChoiceFilter(choices=SaleReturn.REFUND_METHOD_CHOICES)
    sale = django_filters.UUIDFilter(field_name="sale_id")

    class Meta:
        model = SaleReturn
        fields = ["date_from", "date_to", "status", "refund_method", "sale"]
