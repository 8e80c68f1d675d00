# sales/serializers/refund_read.py

from rest_framework import serializers

from sales.models import ReturnReason, SaleReturn
from sales.services.tax_calculator import split_refund_tax


class SaleReturnReadSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for return records.

    Used for:
    - Return history
    - ProcessReturn response

    refund_tax_amount / refund_total_with_tax are not stored: they are
    recomputed from the sale's subtotal / tax_total with the tax calculator.
    """

    sale_total = serializers.DecimalField(
        source="sale.total", max_digits=12, decimal_places=2, read_only=True
    )
    customer_name = serializers.SerializerMethodField()
    user_email = serializers.SerializerMethodField()
    refund_tax_amount = serializers.SerializerMethodField()
    refund_total_with_tax = serializers.SerializerMethodField()

    class Meta:
        model = SaleReturn
        fields = [
            "id",
            "sale",
            "branch",
            "user",
            "user_email",
            "customer_name",
            "sale_total",
            "total_refund",
            "refund_tax_amount",
            "refund_total_with_tax",
            "reason",
            "notes",
            "refund_method",
            "status",
            "return_items",
            "return_date",
        ]
        read_only_fields = fields

    def _split(self, obj):
        cache = self.context.setdefault("_tax_split_cache", {})
        if obj.pk not in cache:
            cache[obj.pk] = split_refund_tax(
                obj.sale.subtotal, obj.sale.tax_total, obj.total_refund
            )
        return cache[obj.pk]

    def get_customer_name(self, obj):
        customer = getattr(obj.sale, "customer", None)
        return getattr(customer, "name", None)

    def get_user_email(self, obj):
        return getattr(obj.user, "email", None)

    def get_refund_tax_amount(self, obj):
        return str(self._split(obj).tax)

    def get_refund_total_with_tax(self, obj):
        return str(self._split(obj).total_with_tax)


class ReturnReasonSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReturnReason
        fields = ["id", "code", "name", "affects_inventory"]
        read_only_fields = fields


class TaxSplitSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_with_tax = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_complete = serializers.BooleanField()


class ReturnOutcomeSerializer(serializers.Serializer):
    """Response body of ProcessReturn (built from a ReturnOutcome)."""

    sale_return = SaleReturnReadSerializer()
    settlement_kind = serializers.CharField(source="kind.value")
    settlement_id = serializers.UUIDField(source="settlement.id")
    settlement_status = serializers.CharField(source="settlement.status")
    settlement_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax_split = TaxSplitSerializer()
    credit_note_number = serializers.SerializerMethodField()
    warnings = serializers.ListField(child=serializers.CharField())
    notes = serializers.ListField(child=serializers.CharField())

    def get_credit_note_number(self, obj):
        document = obj.credit_note_document
        if document is None and obj.customer_credit is not None:
            document = obj.customer_credit.invoice
        return getattr(document, "number", None)
