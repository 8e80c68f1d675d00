# sales/management/commands/reconcile_settlements.py

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError, transaction
from django.utils import timezone

from billing.models import AccountsReceivable, Invoice
from billing.services.invoice_lookup import find_original_invoice
from sales.models import Sale, SaleSettlement
from sales.services.money import ZERO
from sales.services.sale_lifecycle import can_transition

logger = logging.getLogger("returns.reconcile")


def _balances(settlement: SaleSettlement):
    """
    Current (sale, invoice, receivable) rows behind one settlement.
    invoice / receivable are None when the sale has none.
    """
    sale = settlement.sale
    invoice = find_original_invoice(sale=sale)
    receivable = None
    if invoice is not None:
        receivable = (
            AccountsReceivable.objects.filter(invoice=invoice).order_by("created_at").first()
        )
    return sale, invoice, receivable


def _mismatches(sale, invoice, receivable) -> list[str]:
    problems = []
    if invoice is not None and sale.balance != invoice.balance:
        problems.append(f"sale balance {sale.balance} != invoice balance {invoice.balance}")
    if receivable is not None and receivable.balance != invoice.balance:
        problems.append(
            f"receivable balance {receivable.balance} != invoice balance {invoice.balance}"
        )
    return problems


@transaction.atomic
def _repair(settlement: SaleSettlement) -> str:
    """
    Align sale / invoice / receivable balances to the lowest of them
    (balances only ever decrease), finish an interrupted void on FULL
    settlements, then mark the settlement reconciled.
    """
    sale = Sale.objects.select_for_update().get(pk=settlement.sale_id)
    invoice = find_original_invoice(sale=sale)
    if invoice is not None:
        invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
    receivable = None
    if invoice is not None:
        receivable = (
            AccountsReceivable.objects.select_for_update()
            .filter(invoice=invoice)
            .order_by("created_at")
            .first()
        )

    target = min(
        row.balance for row in (sale, invoice, receivable) if row is not None
    )

    if sale.balance != target:
        sale.balance = target
        sale.save(update_fields=["balance", "updated_at"])

    if settlement.kind == SaleSettlement.Kind.FULL and can_transition(
        from_status=sale.status, to_status=Sale.STATUS_VOID
    ):
        sale.status = Sale.STATUS_VOID
        sale.payment_status = Sale.PAYMENT_REFUNDED
        sale.save(update_fields=["status", "payment_status", "updated_at"])

    if invoice is not None and invoice.balance != target:
        invoice.balance = target
        invoice.status = Invoice.Status.PAID if target <= ZERO else Invoice.Status.PARTIAL
        invoice.save(update_fields=["balance", "status", "updated_at"])

    if receivable is not None and receivable.balance != target:
        receivable.balance = target
        receivable.status = (
            AccountsReceivable.Status.PAID
            if target <= ZERO
            else AccountsReceivable.Status.CURRENT
        )
        receivable.save(update_fields=["balance", "status", "updated_at"])

    settlement.record_step(name="reconcile", outcome="ok", detail=f"aligned to {target}")
    settlement.mark(SaleSettlement.Status.RECONCILED)
    return str(target)


class Command(BaseCommand):
    help = "Find settlements that need reconciliation (balance drift, failed steps) and optionally repair them."

    def add_arguments(self, parser):
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Align balances and mark the settlements reconciled.",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any issue remains.",
        )
        parser.add_argument(
            "--stale-minutes",
            dest="stale_minutes",
            type=int,
            default=None,
            help="Age after which an in_progress settlement counts as interrupted "
            "(default: RETURNS_STALE_SETTLEMENT_MINUTES)",
        )

    def handle(self, *args, **options):
        repair = bool(options.get("repair"))
        strict = bool(options.get("strict"))
        stale_minutes = options.get("stale_minutes")
        if stale_minutes is None:
            stale_minutes = int(getattr(settings, "RETURNS_STALE_SETTLEMENT_MINUTES", 15))

        self.stdout.write(self.style.MIGRATE_HEADING("Settlement reconciliation"))

        # -----------------------------
        # 1) Interrupted settlements
        # -----------------------------
        cutoff = timezone.now() - timedelta(minutes=stale_minutes)
        stale = SaleSettlement.objects.filter(
            status=SaleSettlement.Status.IN_PROGRESS,
            created_at__lt=cutoff,
        )
        promoted = 0
        for settlement in stale:
            settlement.mark(
                SaleSettlement.Status.NEEDS_RECONCILIATION,
                error_message=f"in_progress for more than {stale_minutes} minutes",
            )
            promoted += 1

        if promoted:
            self.stdout.write(
                self.style.WARNING(f"[WARN] Stale in_progress settlements promoted: {promoted}")
            )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] No stale in_progress settlements"))

        # -----------------------------
        # 2) Settlements needing reconciliation
        # -----------------------------
        pending = list(
            SaleSettlement.objects.filter(
                status=SaleSettlement.Status.NEEDS_RECONCILIATION
            )
            .select_related("sale")
            .order_by("created_at")
        )

        self.stdout.write(f"Settlements needing reconciliation: {len(pending)}")
        self.stdout.write("")

        issues = 0
        repaired = 0

        for settlement in pending:
            sale, invoice, receivable = _balances(settlement)
            problems = _mismatches(sale, invoice, receivable)
            failed = [s["name"] for s in settlement.failed_steps]

            self.stdout.write(
                f"settlement={settlement.id} sale={sale.id} kind={settlement.kind or '?'}"
            )
            for name in failed:
                self.stdout.write(f"  failed step: {name}")
            for problem in problems:
                self.stderr.write(self.style.ERROR(f"  [FAIL] {problem}"))

            if not repair:
                issues += 1
                continue

            try:
                target = _repair(settlement)
            except (DatabaseError, ValueError) as exc:
                issues += 1
                logger.error(
                    "Settlement repair failed",
                    extra={"settlement_id": str(settlement.id), "error": str(exc)},
                )
                self.stderr.write(self.style.ERROR(f"  [FAIL] repair failed: {exc}"))
                continue

            repaired += 1
            logger.info(
                "Settlement reconciled",
                extra={"settlement_id": str(settlement.id), "balance": target},
            )
            self.stdout.write(self.style.SUCCESS(f"  [OK] reconciled, balances aligned to {target}"))

        self.stdout.write("")
        if repair:
            self.stdout.write(f"Repaired: {repaired}")

        if issues == 0:
            self.stdout.write(self.style.SUCCESS("RECONCILIATION CLEAN"))
        else:
            self.stderr.write(self.style.ERROR(f"RECONCILIATION FOUND ISSUES: {issues} settlement(s)"))

        if strict and issues > 0:
            raise CommandError(f"{issues} settlement(s) need reconciliation")
