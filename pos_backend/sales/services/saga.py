"""
======================================================
PATH: sales/services/saga.py
======================================================
SETTLEMENT SAGA

Purpose:
- Run the writes of one settlement as ordered steps, each in its own
  transaction, and persist every outcome on the SaleSettlement checkpoint.

Rules:
- A step is (name, action, compensate=None, fatal=False).
- FATAL step fails:
    • compensations of the already-completed steps run in reverse order
    • the checkpoint is marked failed
    • SettlementWriteError is raised to the caller
- NON-FATAL step fails:
    • the failure is logged and turned into a warning
    • remaining steps still run
    • the checkpoint ends up needs_reconciliation
- A step action may return SKIPPED (e.g. no receivable exists): logged,
  not a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from sales.models import SaleSettlement
from sales.services.exceptions import SettlementWriteError

logger = logging.getLogger("returns.saga")

SKIPPED = "skipped"

# Failures a step may raise that count as a failed write
STEP_WRITE_ERRORS = (DatabaseError, SettlementWriteError, ValidationError, ValueError)


@dataclass(frozen=True)
class SettlementStep:
    name: str
    action: Callable[[], object]
    compensate: Optional[Callable[[], None]] = None
    fatal: bool = False


@dataclass
class SagaResult:
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings


class SettlementSaga:
    def __init__(self, *, settlement: SaleSettlement, steps: list[SettlementStep]):
        self.settlement = settlement
        self.steps = list(steps)

    def _compensate(self, done: list[SettlementStep]) -> None:
        for step in reversed(done):
            if step.compensate is None:
                continue
            try:
                with transaction.atomic():
                    step.compensate()
                self.settlement.record_step(name=f"compensate:{step.name}", outcome="ok")
            except Exception as exc:
                logger.exception(
                    "Settlement compensation failed",
                    extra={
                        "settlement_id": str(self.settlement.id),
                        "step": step.name,
                    },
                )
                self.settlement.record_step(
                    name=f"compensate:{step.name}", outcome="failed", detail=str(exc)
                )

    def run(self) -> SagaResult:
        result = SagaResult()
        done: list[SettlementStep] = []

        for step in self.steps:
            try:
                with transaction.atomic():
                    outcome = step.action()
            except STEP_WRITE_ERRORS as exc:
                self.settlement.record_step(name=step.name, outcome="failed", detail=str(exc))

                if step.fatal:
                    logger.error(
                        "Fatal settlement step failed; compensating",
                        extra={
                            "settlement_id": str(self.settlement.id),
                            "step": step.name,
                            "error": str(exc),
                        },
                    )
                    self._compensate(done)
                    self.settlement.mark(
                        SaleSettlement.Status.FAILED,
                        error_message=f"{step.name}: {exc}",
                    )
                    raise SettlementWriteError(f"{step.name} failed: {exc}") from exc

                logger.warning(
                    "Settlement step failed (non-fatal)",
                    extra={
                        "settlement_id": str(self.settlement.id),
                        "step": step.name,
                        "error": str(exc),
                    },
                )
                result.warnings.append(f"{step.name} failed: {exc}")
                continue

            if outcome == SKIPPED:
                self.settlement.record_step(name=step.name, outcome=SKIPPED)
                result.skipped.append(step.name)
                continue

            self.settlement.record_step(name=step.name, outcome="ok")
            result.completed.append(step.name)
            done.append(step)

        return result
