"""
Provisioning Pipeline

Runs the ordered provisioning steps for one instance. Provisioning is
fail-fast: the first step that still fails after its in-place retries ends
the run, and the instance is left for the reconciler to pick up again.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, Sequence

from src.lifecycle.application.instance_state import CONFLICT_RETRY_ATTEMPTS
from src.lifecycle.application.provisioning.step import ProvisioningStep, StepResult
from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import ProvisioningEvent
from src.lifecycle.domain.enums import InstanceStatus, ProvisioningEventStatus, ProvisioningPhase
from src.lifecycle.domain.errors import InvalidStatusTransitionError
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.domain.result import Error, Failure, Result, Success
from src.shared.exceptions import ClockMovedBackwardsError, ConcurrencyConflictError
from src.shared.infrastructure.observability.logger import bind_context, get_logger, unbind_context
from src.shared.infrastructure.observability.metrics import MetricsCollector, get_metrics
from src.shared.utils.clock import utcnow
from src.shared.utils.retry import retry

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

_UNRUNNABLE = {InstanceStatus.DESTROYED, InstanceStatus.SUSPENDED}


class ProvisioningPipeline:
    """
    Ordered provisioning for one instance at a time.

    Every phase attempt is recorded as a ProvisioningEvent (IN_PROGRESS
    before, COMPLETED/FAILED after). A later run skips steps whose execute
    and verify phases both completed, so a crashed run resumes where it
    stopped.

    Args:
        uow_factory: Creates a fresh unit of work per transaction
        steps: Steps in execution order
        step_max_attempts: Attempts per phase before the step is failed
        retry_delays: Seconds to wait before each retry; the last value repeats
        max_provisioning_attempts: Pipeline runs allowed before the instance is marked FAILED
        metrics: Metrics collector (global one by default)
        sleep: Awaitable delay, replaceable in tests
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        steps: Sequence[ProvisioningStep],
        *,
        step_max_attempts: int = 3,
        retry_delays: Sequence[float] = (5.0, 10.0, 20.0),
        max_provisioning_attempts: int = 5,
        metrics: Optional[MetricsCollector] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        names = [step.name for step in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate provisioning step names: {names}")
        self._uow_factory = uow_factory
        self._steps = list(steps)
        self._step_max_attempts = max(1, step_max_attempts)
        self._retry_delays = list(retry_delays)
        self._max_provisioning_attempts = max_provisioning_attempts
        self._metrics = metrics or get_metrics()
        self._sleep = sleep

    @property
    def steps(self) -> list[ProvisioningStep]:
        return list(self._steps)

    async def run(self, instance_id: int) -> Result[bool, Error]:
        """
        Provision ``instance_id``.

        Returns:
            Success(True) once the instance is RUNNING (including when it already was),
            otherwise the Failure of the step or state check that stopped the run
        """
        bind_context(instance_id=instance_id)
        started = time.monotonic()
        try:
            begun = await self._begin(instance_id)
            if begun.is_failure():
                logger.warning("provisioning_not_started", error=str(begun.error))
                return begun
            if begun.value is False:
                logger.info("provisioning_skipped_already_running")
                return Success(True)

            completed = await self._completed_steps(instance_id)
            for step in self._steps:
                if step.name in completed:
                    logger.info("provisioning_step_skipped", step=step.name)
                    continue

                logger.info("provisioning_step_started", step=step.name)
                for phase in (ProvisioningPhase.EXECUTE, ProvisioningPhase.VERIFY):
                    result = await self._run_phase(instance_id, step, phase)
                    if result.is_failure():
                        await self._record_failure(instance_id, step, result.error)
                        return result
                logger.info("provisioning_step_completed", step=step.name)

            finished = await self._finish(instance_id)
            if finished.is_success():
                elapsed = time.monotonic() - started
                self._metrics.observe_histogram("provisioning_duration_seconds", elapsed)
                self._metrics.increment_counter("instances_provisioned_total", result="success")
                logger.info("provisioning_completed", duration_s=round(elapsed, 3))
            return finished
        finally:
            unbind_context("instance_id")

    # ------------------------------------------------------------------ phases

    async def _run_phase(self, instance_id: int, step: ProvisioningStep, phase: ProvisioningPhase) -> StepResult:
        result: StepResult = Failure(Error.failure(errors.STEP_EXCEPTION, "step did not run"))
        for attempt in range(1, self._step_max_attempts + 1):
            event = await self._start_event(instance_id, step.name, phase)
            try:
                if phase is ProvisioningPhase.EXECUTE:
                    result = await step.execute(instance_id)
                else:
                    result = await step.verify(instance_id)
            except ClockMovedBackwardsError:
                await self._finish_event(event, False, "clock moved backwards")
                raise
            except Exception as e:
                logger.exception("provisioning_step_raised", step=step.name, phase=phase.value, attempt=attempt)
                result = Failure(Error.failure(errors.STEP_EXCEPTION, f"{type(e).__name__}: {e}"))

            await self._finish_event(event, result.is_success(), None if result.is_success() else result.error.message)
            self._metrics.increment_counter(
                "provisioning_step_total",
                step=step.name,
                phase=phase.value,
                result="success" if result.is_success() else "failure",
            )
            if result.is_success():
                return result

            logger.warning(
                "provisioning_phase_failed",
                step=step.name,
                phase=phase.value,
                attempt=attempt,
                max_attempts=self._step_max_attempts,
                error=str(result.error),
            )
            if attempt < self._step_max_attempts:
                await self._sleep(self._delay_for(attempt))
        return result

    def _delay_for(self, attempt: int) -> float:
        if not self._retry_delays:
            return 0.0
        return self._retry_delays[min(attempt - 1, len(self._retry_delays) - 1)]

    async def _start_event(self, instance_id: int, step_name: str, phase: ProvisioningPhase) -> ProvisioningEvent:
        async with self._uow_factory() as uow:
            event = await uow.events.add(
                ProvisioningEvent(instance_id=instance_id, step_name=step_name, phase=phase, started_at=utcnow())
            )
            await uow.commit()
        return event

    async def _finish_event(self, event: ProvisioningEvent, succeeded: bool, error_message: Optional[str]) -> None:
        event.finish(succeeded, error_message, utcnow())
        async with self._uow_factory() as uow:
            await uow.events.finish(event)
            await uow.commit()

    async def _completed_steps(self, instance_id: int) -> set[str]:
        async with self._uow_factory() as uow:
            events = await uow.events.list_for_instance(instance_id)

        done: dict[str, set[ProvisioningPhase]] = {}
        for event in events:
            if event.status == ProvisioningEventStatus.COMPLETED:
                done.setdefault(event.step_name, set()).add(event.phase)
        return {name for name, phases in done.items() if len(phases) == len(ProvisioningPhase)}

    # ------------------------------------------------------------------ status

    async def _begin(self, instance_id: int) -> Result[bool, Error]:
        """Success(True) when the run should proceed, Success(False) if already RUNNING."""

        async def _attempt() -> Result[bool, Error]:
            async with self._uow_factory() as uow:
                instance = await uow.instances.get_by_id(instance_id)
                if instance is None:
                    return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))
                if instance.status == InstanceStatus.RUNNING:
                    return Success(False)
                if instance.is_deleted or instance.status in _UNRUNNABLE:
                    return Failure(
                        Error.validation(
                            errors.INVALID_STATE,
                            f"Instance {instance_id} is {instance.status.value} and cannot be provisioned",
                        )
                    )
                instance.begin_provisioning(utcnow())
                await uow.instances.update(instance)
                await uow.commit()
                logger.info("provisioning_started", attempt=instance.provisioning_attempts)
                return Success(True)

        return await retry(
            _attempt,
            attempts=CONFLICT_RETRY_ATTEMPTS,
            retry_on=(ConcurrencyConflictError,),
            operation="begin_provisioning",
        )

    async def _finish(self, instance_id: int) -> Result[bool, Error]:
        async def _attempt() -> Result[bool, Error]:
            async with self._uow_factory() as uow:
                instance = await uow.instances.get_by_id(instance_id)
                if instance is None:
                    return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))
                try:
                    instance.mark_running()
                except InvalidStatusTransitionError as e:
                    return Failure(Error.validation(errors.INVALID_STATE, e.message))
                await uow.instances.update(instance)
                await uow.commit()
                return Success(True)

        return await retry(
            _attempt,
            attempts=CONFLICT_RETRY_ATTEMPTS,
            retry_on=(ConcurrencyConflictError,),
            operation="mark_running",
        )

    async def _record_failure(self, instance_id: int, step: ProvisioningStep, error: Error) -> None:
        """Leave the instance PROVISIONING for a later retry, or FAILED once attempts run out."""
        self._metrics.increment_counter("instances_provisioned_total", result="failure")

        async def _attempt() -> Optional[InstanceStatus]:
            async with self._uow_factory() as uow:
                instance = await uow.instances.get_by_id(instance_id)
                if instance is None:
                    return None
                if instance.provisioning_attempts < self._max_provisioning_attempts:
                    return instance.status
                if not instance.can_transition_to(InstanceStatus.FAILED):
                    return instance.status
                instance.mark_failed()
                await uow.instances.update(instance)
                await uow.commit()
                return instance.status

        try:
            status = await retry(
                _attempt,
                attempts=CONFLICT_RETRY_ATTEMPTS,
                retry_on=(ConcurrencyConflictError,),
                operation="record_provisioning_failure",
            )
        except ConcurrencyConflictError:
            logger.error("provisioning_failure_status_not_recorded", step=step.name)
            return

        logger.error(
            "provisioning_failed",
            step=step.name,
            error_code=error.code,
            error=error.message,
            status=status.value if status else None,
        )
