"""Bake lifecycle: instance -> custom image -> cleanup.

Strings the driver's single-shot operations and named waits together.
Compensation lives here, not in the driver: when any step fails the
half-captured image is deleted and the build instance terminated.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias
from threading import Event

from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from skybake.providers.driver import Driver, NoNetworkAttachmentError
from skybake.providers.wait import WaitCancelledError

log = logger.bind(component="lifecycle")

INSTANCE_BOOT_STATES = ("PROVISIONING", "STARTING")
INSTANCE_RUNNING = "RUNNING"
INSTANCE_SHUTDOWN_STATES = ("TERMINATING",)
INSTANCE_TERMINATED = "TERMINATED"

ProvisionHook: TypeAlias = Callable[[str], None]
"""Receives the instance address once it is running; configures the instance."""


@dataclass(frozen=True, slots=True)
class BakeResult:
    """Outcome of a successful bake."""

    image_id: str
    instance_id: str
    address: str


def resolve_address(
    driver: Driver,
    instance_id: str,
    *,
    attempts: int = 5,
    delay: float = 5.0,
    cancel: Event | None = None,
) -> str:
    """Resolve the instance address, retrying while no VNIC is attached.

    A freshly running instance can briefly report zero attachments. Any
    other error, including a missing address on an attached VNIC, is raised
    at once. Setting ``cancel`` wakes a pending sleep and stops before the
    next lookup with WaitCancelledError.
    """

    @retry(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(NoNetworkAttachmentError),
        sleep=cancel.wait if cancel is not None else time.sleep,
        reraise=True,
    )
    def _resolve() -> str:
        if cancel is not None and cancel.is_set():
            raise WaitCancelledError(instance_id, "a network address")
        return driver.get_instance_ip(instance_id)

    return _resolve()


def shutdown(driver: Driver, instance_id: str) -> None:
    """Terminate the instance and wait until it is gone."""
    driver.terminate_instance(instance_id)
    driver.wait_for_instance_state(instance_id, INSTANCE_SHUTDOWN_STATES, INSTANCE_TERMINATED)
    log.info("Instance {instance_id} terminated", instance_id=instance_id)


def _cleanup(driver: Driver, instance_id: str, image_id: str | None) -> None:
    if image_id is not None:
        try:
            driver.delete_image(image_id)
        except Exception as e:
            log.error("Failed to delete image {image_id}: {error}", image_id=image_id, error=e)

    try:
        shutdown(driver, instance_id)
    except Exception as e:
        log.error(
            "Failed to terminate instance {instance_id}: {error}",
            instance_id=instance_id,
            error=e,
        )


def bake_image(
    driver: Driver,
    public_key: str,
    *,
    provision: ProvisionHook | None = None,
    cancel: Event | None = None,
    address_attempts: int = 5,
    address_delay: float = 5.0,
) -> BakeResult:
    """Build a custom image.

    Launches an instance, waits for it to run, hands its address to
    ``provision``, captures an image and waits until it is available, then
    terminates the instance.

    Args:
        driver: Provider driver.
        public_key: SSH public key authorized on the build instance.
        provision: Optional hook run against the instance address before capture.
        cancel: Event that aborts the boot wait, address retries and capture wait.
        address_attempts: Attempts to resolve the address while no VNIC is attached.
        address_delay: Seconds between address attempts.

    Returns:
        BakeResult with the new image id.

    Raises:
        Whatever step failed. Cleanup failures are logged, never raised in
        place of the original error.
    """
    instance_id = driver.create_instance(public_key)
    image_id: str | None = None

    try:
        driver.wait_for_instance_state(
            instance_id, INSTANCE_BOOT_STATES, INSTANCE_RUNNING, cancel=cancel,
        )
        address = resolve_address(
            driver,
            instance_id,
            attempts=address_attempts,
            delay=address_delay,
            cancel=cancel,
        )
        log.info("Instance {instance_id} reachable at {address}", instance_id=instance_id, address=address)

        if provision is not None:
            provision(address)

        image_id = driver.create_image(instance_id).id
        driver.wait_for_image_creation(image_id, cancel=cancel)
        log.info("Image {image_id} available", image_id=image_id)
    except Exception as e:
        log.warning("Bake failed, cleaning up: {error}", error=e)
        _cleanup(driver, instance_id, image_id)
        raise

    shutdown(driver, instance_id)
    return BakeResult(image_id=image_id, instance_id=instance_id, address=address)
