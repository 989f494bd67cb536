"""
Core primitives: configuration, HTTP clients and the retry/poll engine.
"""

from .auth import AccessToken, authenticate
from .client import ApiError, CircleClient, TesserClient
from .config import (
    CircleConfig,
    ConfigError,
    TesserConfig,
    load_circle_config,
    load_tesser_config,
)
from .environment import DemoEnvironment, build_environment, load_env_file
from .polling import (
    FIRST_STEP_FINALIZED,
    SECOND_STEP_CONFIRMED,
    Payment,
    PaymentStep,
    PaymentStepPoller,
    StepFailedError,
    StepPredicate,
    StepReached,
    step_confirmed,
    step_finalized,
    summarize_steps,
)
from .retry import (
    AttemptOutcome,
    ExhaustedError,
    FatalError,
    FatalFailure,
    RetryableFailure,
    RetryError,
    RetryExecutor,
    RetryPolicy,
    Success,
    execute,
)
from .synthetic import SyntheticData

__all__ = [
    "FIRST_STEP_FINALIZED",
    "SECOND_STEP_CONFIRMED",
    "AccessToken",
    "ApiError",
    "AttemptOutcome",
    "CircleClient",
    "CircleConfig",
    "ConfigError",
    "DemoEnvironment",
    "ExhaustedError",
    "FatalError",
    "FatalFailure",
    "Payment",
    "PaymentStep",
    "PaymentStepPoller",
    "RetryError",
    "RetryExecutor",
    "RetryPolicy",
    "RetryableFailure",
    "StepFailedError",
    "StepPredicate",
    "StepReached",
    "Success",
    "SyntheticData",
    "TesserClient",
    "TesserConfig",
    "authenticate",
    "build_environment",
    "execute",
    "load_circle_config",
    "load_env_file",
    "load_tesser_config",
    "step_confirmed",
    "step_finalized",
    "summarize_steps",
]
