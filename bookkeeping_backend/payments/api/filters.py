# payments/api/filters.py

import django_filters as filters

from payments.models import OutstandingEntry, Payment


class OutstandingEntryFilter(filters.FilterSet):
    start_date = filters.DateFilter(field_name="entry_date", lookup_expr="gte")
    end_date = filters.DateFilter(field_name="entry_date", lookup_expr="lte")
    due_before = filters.DateFilter(field_name="due_date", lookup_expr="lte")
    open = filters.BooleanFilter(method="filter_open")

    class Meta:
        model = OutstandingEntry
        fields = ["party", "sr_no", "start_date", "end_date", "due_before", "open"]

    def filter_open(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(net_amount__gt=0)
        return queryset.filter(net_amount__lte=0)


class PaymentFilter(filters.FilterSet):
    start_date = filters.DateFilter(field_name="payment_date", lookup_expr="gte")
    end_date = filters.DateFilter(field_name="payment_date", lookup_expr="lte")
    entry = filters.UUIDFilter(field_name="allocations__entry", distinct=True)

    class Meta:
        model = Payment
        fields = ["party", "channel", "payment_type", "payment_code", "start_date", "end_date", "entry"]
