"""
Long-polling of multi-step Tesser payments.

A payment is processed as an ordered list of steps (funding, settlement, ...).
:class:`PaymentStepPoller` re-fetches the payment until a caller-supplied
predicate over those steps holds. Different rails finalize at different step
offsets, so the predicate is always a parameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, Union

from .retry import (
    FatalError,
    FatalFailure,
    RetryableFailure,
    RetryExecutor,
    RetryPolicy,
    Success,
)

__all__ = [
    "FIRST_STEP_FINALIZED",
    "SECOND_STEP_CONFIRMED",
    "Payment",
    "PaymentStep",
    "PaymentStepPoller",
    "StepFailedError",
    "StepPredicate",
    "StepReached",
    "describe_match",
    "step_confirmed",
    "step_finalized",
    "summarize_steps",
]

FAILED = "failed"


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _format_reasons(reasons: Any) -> Optional[str]:
    if reasons is None:
        return None
    if isinstance(reasons, (list, tuple)):
        return "; ".join(str(reason) for reason in reasons)
    return str(reasons)


@dataclass(frozen=True)
class PaymentStep:
    sequence: int
    status: str
    status_reasons: Optional[str] = None
    finalized_at: Optional[str] = None
    confirmed_at: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "PaymentStep":
        return cls(
            sequence=int(_pick(payload, "stepSequence", "step_sequence")),
            status=str(payload.get("status")),
            status_reasons=_format_reasons(
                _pick(payload, "statusReasons", "status_reasons")
            ),
            finalized_at=_pick(payload, "finalizedAt", "finalized_at"),
            confirmed_at=_pick(payload, "confirmedAt", "confirmed_at"),
        )


@dataclass(frozen=True)
class Payment:
    """Read-only view of a payment and its steps, ordered by sequence."""

    id: str
    steps: Tuple[PaymentStep, ...] = ()

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "Payment":
        """
        Accept either the API envelope ``{"data": {...}}`` or the inner object.
        """
        data = payload.get("data", payload)
        steps = sorted(
            (PaymentStep.from_response(step) for step in data.get("steps") or ()),
            key=lambda step: step.sequence,
        )
        return cls(id=str(data.get("id")), steps=tuple(steps))


StepPredicate = Callable[[Sequence[PaymentStep]], bool]


@dataclass(frozen=True)
class StepReached:
    """
    Done once ``steps[index]`` carries a ``<milestone>_at`` timestamp.

    ``milestone`` is ``"finalized"`` or ``"confirmed"``. Any other callable
    over the steps works as a predicate too; this one can also say which
    step satisfied it and when.
    """

    index: int
    milestone: str

    def __post_init__(self) -> None:
        if self.milestone not in ("finalized", "confirmed"):
            raise ValueError(f"Unknown step milestone: {self.milestone!r}")

    def timestamp(self, steps: Sequence[PaymentStep]) -> Optional[str]:
        if len(steps) <= self.index:
            return None
        return getattr(steps[self.index], f"{self.milestone}_at") or None

    def __call__(self, steps: Sequence[PaymentStep]) -> bool:
        return self.timestamp(steps) is not None

    def describe(self, steps: Sequence[PaymentStep]) -> str:
        step = steps[self.index]
        return f"Step {step.sequence} {self.milestone} at {self.timestamp(steps)}"


def step_finalized(index: int) -> StepReached:
    """Done once ``steps[index]`` carries a ``finalizedAt`` timestamp."""
    return StepReached(index, "finalized")


def step_confirmed(index: int) -> StepReached:
    """Done once ``steps[index]`` carries a ``confirmedAt`` timestamp."""
    return StepReached(index, "confirmed")


def describe_match(predicate: StepPredicate, steps: Sequence[PaymentStep]) -> str:
    describe = getattr(predicate, "describe", None)
    if describe is not None:
        return describe(steps)
    name = getattr(predicate, "__name__", repr(predicate))
    return f"{name} satisfied ({summarize_steps(steps)})"


FIRST_STEP_FINALIZED = step_finalized(0)
SECOND_STEP_CONFIRMED = step_confirmed(1)


def summarize_steps(steps: Sequence[PaymentStep]) -> str:
    return ", ".join(f"step{step.sequence}={step.status}" for step in steps)


class StepFailedError(FatalError):
    """A payment step reported ``failed``; it will not recover on its own."""

    def __init__(
        self,
        label: str,
        attempt: int,
        payment_id: str,
        sequence: int,
        status_reasons: Optional[str],
    ) -> None:
        super().__init__(
            label, attempt, f"Step {sequence} failed: {status_reasons}"
        )
        self.payment_id = payment_id
        self.sequence = sequence
        self.status_reasons = status_reasons


class PaymentStepPoller:
    """
    Polls a payment by id until ``predicate(payment.steps)`` is true.

    ``fetch_payment`` may return a :class:`Payment` or the raw JSON response.
    Fetch errors are retried; a failed step aborts on the spot.
    """

    def __init__(
        self,
        fetch_payment: Callable[[str], Union[Payment, Mapping[str, Any]]],
        *,
        executor: Optional[RetryExecutor] = None,
    ) -> None:
        self._fetch_payment = fetch_payment
        self._executor = executor or RetryExecutor()

    def poll(
        self,
        payment_id: str,
        predicate: StepPredicate = FIRST_STEP_FINALIZED,
        policy: Optional[RetryPolicy] = None,
    ) -> Payment:
        policy = policy or RetryPolicy(label="Poll")
        failed_steps: list[PaymentStep] = []

        def attempt():
            payment = self._fetch_payment(payment_id)
            if not isinstance(payment, Payment):
                payment = Payment.from_response(payment)

            for step in payment.steps:
                if step.failed:
                    failed_steps.append(step)
                    return FatalFailure(
                        f"Step {step.sequence} failed: {step.status_reasons}"
                    )

            logging.info("Poll: %s", summarize_steps(payment.steps))
            if predicate(payment.steps):
                return Success(payment)
            return RetryableFailure("Payment not yet finalized")

        try:
            payment = self._executor.execute(attempt, policy)
        except FatalError as exc:
            if not failed_steps:
                raise
            step = failed_steps[-1]
            raise StepFailedError(
                exc.label, exc.attempt, payment_id, step.sequence, step.status_reasons
            ) from exc

        logging.info(
            "Payment %s: %s", payment_id, describe_match(predicate, payment.steps)
        )
        return payment
