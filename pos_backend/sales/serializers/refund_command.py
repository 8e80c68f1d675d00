# sales/serializers/refund_command.py

from rest_framework import serializers

from sales.services.refund_request import REFUND_METHODS, RefundRequest, RefundRequestItem


class ReturnItemInputSerializer(serializers.Serializer):
    sale_item_id = serializers.UUIDField()
    product_id = serializers.UUIDField(required=False, allow_null=True)
    return_quantity = serializers.IntegerField()
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    affects_inventory = serializers.BooleanField(required=False, allow_null=True, default=None)


class ProcessReturnCommandSerializer(serializers.Serializer):
    """
    Command serializer for ProcessReturn.

    This serializer does NOT touch the database. Shape checks only; the
    business rules (reasons, quantity ceilings, totals) are enforced by the
    refund validator so every entrypoint gets the same answers.
    """

    type = serializers.ChoiceField(choices=["full", "partial"], required=False, default="partial")
    items = ReturnItemInputSerializer(many=True, allow_empty=True)
    refund_method = serializers.ChoiceField(choices=list(REFUND_METHODS))
    total_refund = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def to_refund_request(self) -> RefundRequest:
        data = self.validated_data
        return RefundRequest(
            type=data.get("type") or "partial",
            items=[
                RefundRequestItem(
                    sale_item_id=str(line["sale_item_id"]),
                    product_id=str(line["product_id"]) if line.get("product_id") else None,
                    return_quantity=line["return_quantity"],
                    refund_amount=line["refund_amount"],
                    reason=line.get("reason") or "",
                    affects_inventory=line.get("affects_inventory"),
                )
                for line in data.get("items") or []
            ],
            refund_method=data["refund_method"],
            total_refund=data.get("total_refund"),
            reason=data.get("reason") or "",
            notes=data.get("notes") or "",
        )
