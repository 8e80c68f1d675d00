# products/tests/test_stock_returns.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from products.models import StockMovement
from products.services.stock_returns import RestockLine, StockReturnError, restock_items
from sales.models import SaleReturn
from sales.testing import make_product, make_scope, make_sale, make_user


class StockReturnTests(TestCase):
    """
    Restock after a return.

    GUARANTEES:
    - one RETURN movement per (sale return, sale item)
    - re-running the restock never counts units twice
    - movements are immutable
    """

    def setUp(self):
        self.org, self.branch = make_scope()
        self.user = make_user(self.org, self.branch)
        self.product = make_product(self.org, name="Bufanda", price="30.00", stock=5)
        self.sale, self.items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(self.product, 3, "30.00")],
        )
        self.sale_return = SaleReturn.objects.create(
            organization=self.org,
            sale=self.sale,
            user=self.user,
            total_refund=Decimal("60.00"),
            reason="wrong_size",
            refund_method=SaleReturn.METHOD_CASH,
            return_items=[{"sale_item_id": str(self.items[0].id), "return_quantity": 2}],
        )
        self.line = RestockLine(
            sale_item_id=self.items[0].id, product_id=self.product.id, quantity=2
        )

    def test_restock_increments_stock_and_logs_movement(self):
        result = restock_items(sale_return=self.sale_return, lines=[self.line], user=self.user)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 7)
        self.assertEqual(len(result.created), 1)

        movement = result.created[0]
        self.assertEqual(movement.movement_type, StockMovement.MovementType.IN)
        self.assertEqual(movement.reason, StockMovement.Reason.RETURN)
        self.assertEqual(movement.quantity, 2)

    def test_restock_is_idempotent_per_sale_item(self):
        restock_items(sale_return=self.sale_return, lines=[self.line])
        result = restock_items(sale_return=self.sale_return, lines=[self.line])

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 7)
        self.assertEqual(result.created, [])
        self.assertEqual(result.skipped, [self.items[0].id])
        self.assertEqual(StockMovement.objects.count(), 1)

    def test_invalid_quantity_rejected(self):
        bad = RestockLine(sale_item_id=self.items[0].id, product_id=self.product.id, quantity=0)

        with self.assertRaises(StockReturnError):
            restock_items(sale_return=self.sale_return, lines=[bad])

    def test_movements_are_immutable(self):
        movement = restock_items(sale_return=self.sale_return, lines=[self.line]).created[0]

        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()

    def test_return_movement_requires_references(self):
        with self.assertRaises(ValidationError):
            StockMovement.objects.create(
                product=self.product,
                movement_type=StockMovement.MovementType.IN,
                reason=StockMovement.Reason.RETURN,
                quantity=1,
            )
