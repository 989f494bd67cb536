"""
Fixed-interval bounded retry for calls against the payment APIs.

An operation is any zero-argument callable. It reports how an attempt went by
returning one of :class:`Success`, :class:`RetryableFailure` or
:class:`FatalFailure`. Plain return values count as success and raised
exceptions count as retryable failures, so bare API calls can be passed in
unchanged.

tenacity enforces the attempt cap and the constant wait between attempts.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar, Union

import tenacity
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

if TYPE_CHECKING:
    from .config import TesserConfig

__all__ = [
    "RETRY_INTERVAL_MS",
    "RETRY_MAX_ATTEMPTS",
    "AttemptOutcome",
    "ExhaustedError",
    "FatalError",
    "FatalFailure",
    "RetryError",
    "RetryExecutor",
    "RetryPolicy",
    "RetryableFailure",
    "Success",
    "execute",
]

RETRY_INTERVAL_MS = 10_000
RETRY_MAX_ATTEMPTS = 60

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable retry configuration.

    The wait between attempts is always ``interval_ms``; settlement pipelines
    move on a roughly fixed cycle so there is no backoff or jitter.
    """

    max_attempts: int = RETRY_MAX_ATTEMPTS
    interval_ms: int = RETRY_INTERVAL_MS
    label: str = "Operation"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_ms < 0:
            raise ValueError("interval_ms must not be negative")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @classmethod
    def from_config(cls, config: "TesserConfig", label: str) -> "RetryPolicy":
        return cls(
            max_attempts=config.retry_max_attempts,
            interval_ms=config.retry_interval_ms,
            label=label,
        )


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class RetryableFailure:
    message: str


@dataclass(frozen=True)
class FatalFailure:
    message: str


AttemptOutcome = Union[Success[T], RetryableFailure, FatalFailure]


class RetryError(RuntimeError):
    """Base class for errors raised by :class:`RetryExecutor`."""


class ExhaustedError(RetryError):
    """Raised when every attempt failed with a retryable failure."""

    def __init__(self, label: str, attempts: int, last_message: str) -> None:
        super().__init__(
            f"{label} gave up after {attempts} attempts: {last_message}"
        )
        self.label = label
        self.attempts = attempts
        self.last_message = last_message


class FatalError(RetryError):
    """Raised as soon as an attempt reports a failure that waiting cannot fix."""

    def __init__(self, label: str, attempt: int, message: str) -> None:
        super().__init__(f"{label} aborted on attempt {attempt}: {message}")
        self.label = label
        self.attempt = attempt
        self.message = message


class _AttemptFailed(Exception):
    """Signals tenacity to schedule another attempt."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RetryExecutor:
    """
    Runs operations under a :class:`RetryPolicy`.

    ``sleep`` blocks the calling flow between attempts; tests swap it for a
    recorder. The executor keeps no state between :meth:`execute` calls.
    """

    def __init__(self, *, sleep: Callable[[float], Any] = time.sleep) -> None:
        self._sleep = sleep

    def _retrying(self, policy: RetryPolicy) -> Retrying:
        def announce_wait(retry_state: RetryCallState) -> None:
            logging.info("Retrying in %ss...", f"{policy.interval_seconds:g}")

        return Retrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_fixed(policy.interval_seconds),
            sleep=self._sleep,
            retry=retry_if_exception_type(_AttemptFailed),
            before_sleep=announce_wait,
        )

    def execute(
        self,
        operation: Callable[[], Any],
        policy: Optional[RetryPolicy] = None,
    ) -> Any:
        policy = policy or RetryPolicy()
        try:
            for attempt in self._retrying(policy):
                with attempt:
                    return self._run_attempt(
                        operation, policy, attempt.retry_state.attempt_number
                    )
        except tenacity.RetryError as exc:
            last = exc.last_attempt
            failure = last.exception()
            raise ExhaustedError(
                policy.label, last.attempt_number, str(failure)
            ) from failure

    @staticmethod
    def _run_attempt(
        operation: Callable[[], Any], policy: RetryPolicy, attempt: int
    ) -> Any:
        try:
            outcome = operation()
        except Exception as exc:  # noqa: BLE001
            outcome = RetryableFailure(str(exc))

        match outcome:
            case Success(value=value):
                return value
            case FatalFailure(message=message):
                logging.error(
                    "%s attempt %d/%d failed permanently: %s",
                    policy.label,
                    attempt,
                    policy.max_attempts,
                    message,
                )
                raise FatalError(policy.label, attempt, message)
            case RetryableFailure(message=message):
                logging.warning(
                    "%s attempt %d/%d failed: %s",
                    policy.label,
                    attempt,
                    policy.max_attempts,
                    message,
                )
                raise _AttemptFailed(message)
            case _:
                return outcome


def execute(
    operation: Callable[[], Any],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], Any] = time.sleep,
) -> Any:
    """Run ``operation`` once under ``policy`` with a throwaway executor."""
    return RetryExecutor(sleep=sleep).execute(operation, policy)
