import django_filters

from payments.models import Payment, Transaction


class _LedgerFilter(django_filters.FilterSet):
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_amount = django_filters.NumberFilter(field_name="amount", lookup_expr="gte")
    max_amount = django_filters.NumberFilter(field_name="amount", lookup_expr="lte")
    status = django_filters.ChoiceFilter(choices=Payment.STATUSES)


class PaymentFilter(_LedgerFilter):
    class Meta:
        model = Payment
        fields = ["status", "start_date", "end_date", "min_amount", "max_amount"]


class TransactionFilter(_LedgerFilter):
    class Meta:
        model = Transaction
        fields = ["status", "start_date", "end_date", "min_amount", "max_amount"]
