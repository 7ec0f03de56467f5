"""
Bulk operation coordinator: one ledger command fanned out to many payers.

A bulk command is NOT a transaction. Each target runs as its own engine
call in its own database transaction, and whatever happens to one target
is recorded as that target's outcome:

- success                      -> succeeded (with the engine's return value)
- ledger error (overpayment,
  missing account, ...)        -> failed with the error code
- ConcurrentConflict           -> retried with linear backoff, then failed
- unexpected exception         -> failed as INTERNAL_ERROR, logged with traceback
- still running past timeout   -> failed as TIMEOUT (may still commit later)
- cancelled before it started  -> skipped

Targets that already committed are never rolled back, whether a later
target fails or the batch is cancelled.

Parallelism:
    Targets run on a thread pool of LEDGER_BULK_MAX_WORKERS threads; each
    worker thread uses its own database connection and closes it when the
    target finishes. With max_workers <= 1 targets run inline, one after
    another, in the calling thread (and inside its transaction, if any).
    Inline runs cannot be pre-empted, so the per-target timeout only
    applies to pooled runs.

Usage:
    from ledger.services.bulk_coordinator import BulkOperationCoordinator

    result = BulkOperationCoordinator().bulk_record_payment(
        LedgerKind.SALARY, staff_ids, RecordPaymentParams(45_000_00, method="neft")
    )
    result.summary  # "succeeded for 11 of 12"
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
import uuid
from collections import deque
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

from django.conf import settings
from django.db import connections

from core.exceptions import BaseApplicationError, ValidationError
from core.services import BaseService
from ledger.exceptions import ConcurrentConflict
from ledger.services.engine import LedgerEngine
from ledger.types import (
    BulkResult,
    OutcomeStatus,
    RecordPaymentParams,
    SetDueParams,
    TargetOutcome,
)

Operation = Callable[[uuid.UUID], Any]

# How often a pooled run checks its cancel event while targets are running
CANCEL_POLL_SECONDS = 0.1


class BulkOperationCoordinator(BaseService):
    """
    Runs a per-payer operation over a batch of payers.

    Limits default to the LEDGER_BULK_* settings, read when the coordinator
    is created.
    """

    def __init__(
        self,
        engine: type[LedgerEngine] | LedgerEngine = LedgerEngine,
        max_workers: int | None = None,
        target_timeout: float | None = None,
        max_retries: int | None = None,
        retry_backoff: float | None = None,
        max_targets: int | None = None,
    ):
        self.engine = engine
        self.max_workers = (
            settings.LEDGER_BULK_MAX_WORKERS if max_workers is None else max_workers
        )
        self.target_timeout = (
            settings.LEDGER_BULK_TARGET_TIMEOUT_SECONDS
            if target_timeout is None
            else target_timeout
        )
        self.max_retries = (
            settings.LEDGER_BULK_MAX_RETRIES if max_retries is None else max_retries
        )
        self.retry_backoff = (
            settings.LEDGER_BULK_RETRY_BACKOFF_SECONDS
            if retry_backoff is None
            else retry_backoff
        )
        self.max_targets = (
            settings.LEDGER_BULK_MAX_TARGETS if max_targets is None else max_targets
        )

    # =========================================================================
    # Commands
    # =========================================================================

    def bulk_set_due(
        self,
        kind: str,
        payer_ids: Iterable[uuid.UUID],
        params: SetDueParams,
        cancel_event: threading.Event | None = None,
    ) -> BulkResult:
        """Apply the same SetDue to every payer."""
        return self.run(
            payer_ids,
            lambda payer_id: self.engine.set_due(kind, payer_id, params),
            cancel_event=cancel_event,
            context={"operation": "set_due", "kind": str(kind)},
        )

    def bulk_record_payment(
        self,
        kind: str,
        payer_ids: Iterable[uuid.UUID],
        params: RecordPaymentParams,
        cancel_event: threading.Event | None = None,
    ) -> BulkResult:
        """
        Record the same payment for every payer.

        A ``transaction_id`` is treated as a batch reference: each target
        gets ``"<transaction_id>:<payer_id>"``, so resubmitting the same
        batch replays instead of double-paying.
        """
        if params.expected_version is not None:
            raise ValidationError(
                "expected_version applies to a single account, not a batch",
                details={"field": "expected_version"},
            )

        def pay(payer_id: uuid.UUID):
            target_params = params
            if params.transaction_id:
                target_params = dataclasses.replace(
                    params, transaction_id=f"{params.transaction_id}:{payer_id}"
                )
            return self.engine.record_payment(kind, payer_id, target_params)

        return self.run(
            payer_ids,
            pay,
            cancel_event=cancel_event,
            context={"operation": "record_payment", "kind": str(kind)},
        )

    # =========================================================================
    # Execution
    # =========================================================================

    def run(
        self,
        payer_ids: Iterable[uuid.UUID],
        operation: Operation,
        cancel_event: threading.Event | None = None,
        context: dict[str, Any] | None = None,
    ) -> BulkResult:
        """
        Run ``operation`` once per distinct payer and collect the outcomes.

        Raises:
            ValidationError: Empty target list or more than max_targets
        """
        targets = self._distinct_targets(payer_ids)
        context = context or {}
        started = time.monotonic()

        if self.max_workers <= 1:
            outcomes = self._run_inline(targets, operation, cancel_event)
        else:
            outcomes = self._run_pooled(targets, operation, cancel_event)

        result = BulkResult(
            outcomes=[outcomes[payer_id] for payer_id in targets],
            cancelled=bool(cancel_event and cancel_event.is_set()),
        )
        self.get_logger().info(
            f"Bulk operation finished: {result.summary}",
            extra={
                **context,
                "total": result.total,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "skipped": result.skipped,
                "cancelled": result.cancelled,
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return result

    def _distinct_targets(self, payer_ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
        targets = list(dict.fromkeys(payer_ids))
        if not targets:
            raise ValidationError(
                "At least one payer is required",
                details={"field": "payer_ids"},
            )
        if len(targets) > self.max_targets:
            raise ValidationError(
                f"A bulk operation accepts at most {self.max_targets} payers",
                details={
                    "field": "payer_ids",
                    "received": len(targets),
                    "max_targets": self.max_targets,
                },
            )
        return targets

    def _run_inline(
        self,
        targets: list[uuid.UUID],
        operation: Operation,
        cancel_event: threading.Event | None,
    ) -> dict[uuid.UUID, TargetOutcome]:
        outcomes = {}
        for payer_id in targets:
            if cancel_event is not None and cancel_event.is_set():
                outcomes[payer_id] = self._skipped(payer_id)
                continue
            outcomes[payer_id] = self._attempt(payer_id, operation)
        return outcomes

    def _run_pooled(
        self,
        targets: list[uuid.UUID],
        operation: Operation,
        cancel_event: threading.Event | None,
    ) -> dict[uuid.UUID, TargetOutcome]:
        outcomes: dict[uuid.UUID, TargetOutcome] = {}
        pending = deque(targets)
        in_flight: dict[Future, tuple[uuid.UUID, float]] = {}
        # Written by workers when a target actually starts running
        started_at: dict[uuid.UUID, float] = {}

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="ledger-bulk"
        )
        try:
            while pending or in_flight:
                cancelled = cancel_event is not None and cancel_event.is_set()
                if cancelled:
                    while pending:
                        payer_id = pending.popleft()
                        outcomes[payer_id] = self._skipped(payer_id)
                    for future, (payer_id, _) in list(in_flight.items()):
                        if future.cancel():
                            in_flight.pop(future)
                            outcomes[payer_id] = self._skipped(payer_id)

                while pending and len(in_flight) < self.max_workers:
                    payer_id = pending.popleft()
                    future = executor.submit(
                        self._pooled_attempt, payer_id, operation, started_at
                    )
                    in_flight[future] = (payer_id, time.monotonic())

                if not in_flight:
                    break

                timeout = self._next_deadline(in_flight, started_at) - time.monotonic()
                if cancel_event is not None:
                    timeout = min(timeout, CANCEL_POLL_SECONDS)
                done, _ = wait(
                    in_flight, timeout=max(timeout, 0), return_when=FIRST_COMPLETED
                )
                for future in done:
                    payer_id, _ = in_flight.pop(future)
                    outcomes[payer_id] = future.result()

                now = time.monotonic()
                for future, (payer_id, submitted) in list(in_flight.items()):
                    deadline = started_at.get(payer_id, submitted) + self.target_timeout
                    if now >= deadline:
                        in_flight.pop(future)
                        future.cancel()
                        outcomes[payer_id] = self._timed_out(payer_id)
        finally:
            # Do not block on timed-out workers; they finish on their own
            executor.shutdown(wait=False, cancel_futures=True)

        return outcomes

    def _next_deadline(
        self,
        in_flight: dict[Future, tuple[uuid.UUID, float]],
        started_at: dict[uuid.UUID, float],
    ) -> float:
        return min(
            started_at.get(payer_id, submitted) + self.target_timeout
            for payer_id, submitted in in_flight.values()
        )

    def _pooled_attempt(
        self,
        payer_id: uuid.UUID,
        operation: Operation,
        started_at: dict[uuid.UUID, float],
    ) -> TargetOutcome:
        started_at[payer_id] = time.monotonic()
        try:
            return self._attempt(payer_id, operation)
        finally:
            connections.close_all()

    def _attempt(self, payer_id: uuid.UUID, operation: Operation) -> TargetOutcome:
        """Run one target, retrying on conflicts. Never raises."""
        attempts = 0
        while True:
            attempts += 1
            try:
                data = operation(payer_id)
            except ConcurrentConflict as exc:
                if attempts <= self.max_retries:
                    time.sleep(self.retry_backoff * attempts)
                    continue
                return self._failed(payer_id, exc, attempts)
            except Exception as exc:
                return self._failed(payer_id, exc, attempts)
            return TargetOutcome(
                payer_id=payer_id,
                status=OutcomeStatus.SUCCEEDED,
                data=data,
                attempts=attempts,
            )

    def _failed(
        self, payer_id: uuid.UUID, exc: Exception, attempts: int
    ) -> TargetOutcome:
        expected = isinstance(exc, BaseApplicationError)
        result = self.handle_exception(
            exc,
            context=f"Bulk target {payer_id} failed",
            log_level=logging.WARNING if expected else logging.ERROR,
            extra={"payer_id": str(payer_id), "attempts": attempts},
        )
        return TargetOutcome(
            payer_id=payer_id,
            status=OutcomeStatus.FAILED,
            error=result.error,
            error_code=result.error_code,
            details=result.details,
            attempts=attempts,
        )

    def _timed_out(self, payer_id: uuid.UUID) -> TargetOutcome:
        self.get_logger().warning(
            "Bulk target timed out",
            extra={"payer_id": str(payer_id), "timeout_seconds": self.target_timeout},
        )
        return TargetOutcome(
            payer_id=payer_id,
            status=OutcomeStatus.FAILED,
            error=(
                f"Timed out after {self.target_timeout:g}s; re-read the account, "
                "the change may still have been applied"
            ),
            error_code="TIMEOUT",
            details={"timeout_seconds": self.target_timeout},
        )

    @staticmethod
    def _skipped(payer_id: uuid.UUID) -> TargetOutcome:
        return TargetOutcome(
            payer_id=payer_id,
            status=OutcomeStatus.SKIPPED,
            error="Batch cancelled before this payer was processed",
            error_code="CANCELLED",
        )
