# pos/tests/test_cash_session.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from pos.models import CashMovement, CashSession
from pos.services.cash_session import CashSessionError, find_open_session, record_movement
from sales.testing import make_scope, make_user


class CashSessionTests(TestCase):
    """
    Cash drawer sessions.

    GUARANTEES:
    - one open session per branch
    - movements are positive, append-only and only on open sessions
    """

    def setUp(self):
        self.org, self.branch = make_scope()
        self.user = make_user(self.org, self.branch)
        self.session = CashSession.objects.create(
            organization=self.org,
            branch=self.branch,
            opened_by=self.user,
            opening_amount=Decimal("200.00"),
        )

    def test_find_open_session(self):
        self.assertEqual(find_open_session(self.branch), self.session)
        self.assertIsNone(find_open_session(None))

        self.session.status = CashSession.STATUS_CLOSED
        self.session.save(update_fields=["status"])
        self.assertIsNone(find_open_session(self.branch))

    def test_second_open_session_per_branch_rejected(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                CashSession.objects.create(
                    organization=self.org, branch=self.branch, opened_by=self.user
                )

    def test_refund_is_an_out_movement(self):
        movement = record_movement(self.session, Decimal("59.50"), "Return: defective", self.user)

        self.assertEqual(movement.movement_type, CashMovement.TYPE_OUT)
        self.assertEqual(movement.amount, Decimal("59.50"))
        self.assertEqual(self.session.net_movements, Decimal("-59.50"))

    def test_non_positive_amount_rejected(self):
        with self.assertRaises(CashSessionError):
            record_movement(self.session, Decimal("0.00"), "Return")
        with self.assertRaises(CashSessionError):
            record_movement(self.session, "abc", "Return")

    def test_closed_session_rejects_movements(self):
        self.session.status = CashSession.STATUS_CLOSED
        self.session.save(update_fields=["status"])

        with self.assertRaises(ValidationError):
            record_movement(self.session, Decimal("10.00"), "Return")

    def test_movements_are_immutable(self):
        movement = record_movement(self.session, Decimal("10.00"), "Return")

        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()
