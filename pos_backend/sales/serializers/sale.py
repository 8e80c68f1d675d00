# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import Sale


class SaleForReturnSerializer(serializers.ModelSerializer):
    """
    Sale row in the "find a sale to return" list (read-only).
    """

    customer_name = serializers.SerializerMethodField()
    branch_name = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            "id",
            "sale_date",
            "customer",
            "customer_name",
            "branch",
            "branch_name",
            "subtotal",
            "tax_total",
            "total",
            "balance",
            "status",
            "payment_status",
            "payment_method",
        ]
        read_only_fields = fields

    def get_customer_name(self, obj):
        return getattr(obj.customer, "name", None)

    def get_branch_name(self, obj):
        return getattr(obj.branch, "name", None)


class LedgerItemSerializer(serializers.Serializer):
    sale_item_id = serializers.CharField()
    product_id = serializers.CharField(allow_null=True)
    product_name = serializers.CharField()
    sku = serializers.CharField(allow_blank=True)
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    returned_quantity = serializers.IntegerField()
    returnable_quantity = serializers.IntegerField()


class LedgerPaymentSerializer(serializers.Serializer):
    id = serializers.CharField()
    method = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reference = serializers.CharField(allow_blank=True)
    status = serializers.CharField()
    created_at = serializers.DateTimeField()


class SaleLedgerSerializer(serializers.Serializer):
    """
    Ledger view of one sale (built from a SaleLedger read model).
    """

    sale = SaleForReturnSerializer()
    invoice_number = serializers.CharField(allow_null=True)
    items = LedgerItemSerializer(many=True)
    payments = LedgerPaymentSerializer(many=True)
    notes = serializers.ListField(child=serializers.CharField())
