"""Compute providers and the lifecycle-state waiter they share."""

from skybake.providers.driver import (
    Driver,
    DriverError,
    NoInstanceAddressError,
    NoNetworkAttachmentError,
)
from skybake.providers.wait import (
    UNBOUNDED,
    Bounded,
    MaxRetriesExceededError,
    ResourceFailedError,
    Unbounded,
    UnexpectedStateError,
    WaitCancelledError,
    WaitError,
    WaitSpec,
    WaitTimeoutError,
    wait_for_state,
)

__all__ = [
    "UNBOUNDED",
    "Bounded",
    "Driver",
    "DriverError",
    "MaxRetriesExceededError",
    "NoInstanceAddressError",
    "NoNetworkAttachmentError",
    "ResourceFailedError",
    "Unbounded",
    "UnexpectedStateError",
    "WaitCancelledError",
    "WaitError",
    "WaitSpec",
    "WaitTimeoutError",
    "wait_for_state",
]
