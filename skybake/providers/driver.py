from collections.abc import Iterable
from threading import Event
from typing import Protocol, runtime_checkable


class DriverError(Exception):
    """Base class for errors synthesized by a driver (not the provider SDK)."""


class NoNetworkAttachmentError(DriverError):
    """Instance has no network attachment to resolve an address from."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"Instance {instance_id} has zero network attachments")
        self.instance_id = instance_id


class NoInstanceAddressError(DriverError):
    """Network attachment exists but carries no address of the requested kind."""

    def __init__(self, instance_id: str, kind: str) -> None:
        super().__init__(f"Instance {instance_id} has no {kind} IP address")
        self.instance_id = instance_id
        self.kind = kind


class ImageHandle(Protocol):
    @property
    def id(self) -> str: ...


@runtime_checkable
class Driver(Protocol):
    """Single-shot lifecycle operations against a compute provider.

    Implementations hold only immutable config and API clients. No
    operation retries internally; provider errors reach the caller as-is.
    Waiting for a resource to settle is done through the named waits,
    which are built on ``skybake.providers.wait.wait_for_state``.
    """

    def create_instance(self, public_key: str) -> str:
        """Launch an instance with ``public_key`` authorized for SSH.

        Returns
        -------
        str
            The new instance id. The instance is not running yet.
        """
        ...

    def create_image(self, instance_id: str) -> ImageHandle:
        """Capture a custom image from an instance. Returns immediately."""
        ...

    def delete_image(self, image_id: str) -> None: ...

    def terminate_instance(self, instance_id: str) -> None: ...

    def get_instance_ip(self, instance_id: str) -> str:
        """Resolve the address used to reach the instance.

        Raises
        ------
        NoNetworkAttachmentError
            The instance has no network attachment yet.
        NoInstanceAddressError
            The attachment has no address of the configured kind.
        """
        ...

    def wait_for_image_creation(self, image_id: str, *, cancel: Event | None = None) -> None: ...

    def wait_for_instance_state(
        self,
        instance_id: str,
        waiting_states: Iterable[str],
        terminal_state: str,
        *,
        cancel: Event | None = None,
    ) -> None: ...
