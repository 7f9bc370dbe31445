# ledger/api/filters.py

import django_filters as filters

from ledger.models import Account, LedgerPosting


class AccountFilter(filters.FilterSet):
    name = filters.CharFilter(field_name="name", lookup_expr="icontains")

    class Meta:
        model = Account
        fields = ["is_active", "name"]


class LedgerPostingFilter(filters.FilterSet):
    start_date = filters.DateFilter(field_name="date", lookup_expr="gte")
    end_date = filters.DateFilter(field_name="date", lookup_expr="lte")
    linked = filters.BooleanFilter(field_name="link_group_id", lookup_expr="isnull", exclude=True)

    class Meta:
        model = LedgerPosting
        fields = ["account", "link_group_id", "start_date", "end_date", "linked"]
