import django_filters

from modules.orders.constants import OrderStatus, ReturnStatus
from modules.orders.models import Order, ReturnRequest, VendorSlice


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(field_name="status", choices=OrderStatus.choices)
    customer_id = django_filters.CharFilter(field_name="customer_id")
    created_from = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    created_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "customer_id", "created_from", "created_to"]


class VendorSliceFilter(django_filters.FilterSet):
    """Vendor listing: ``status`` is the vendor's own slice status."""

    status = django_filters.ChoiceFilter(field_name="status", choices=OrderStatus.choices)
    created_from = django_filters.DateFilter(
        field_name="order__created_at", lookup_expr="date__gte"
    )
    created_to = django_filters.DateFilter(
        field_name="order__created_at", lookup_expr="date__lte"
    )

    class Meta:
        model = VendorSlice
        fields = ["status", "created_from", "created_to"]


class ReturnFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(field_name="status", choices=ReturnStatus.choices)
    vendor_id = django_filters.CharFilter(field_name="vendor_id")
    customer_id = django_filters.CharFilter(field_name="customer_id")
    order_id = django_filters.UUIDFilter(field_name="order_id")

    class Meta:
        model = ReturnRequest
        fields = ["status", "vendor_id", "customer_id", "order_id"]
