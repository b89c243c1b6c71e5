"""OCI resource driver.

Thin wrapper over the OCI Python SDK: each method is a single remote call
without retries. Lifecycle waits reuse the generic waiter from
``skybake.providers.wait`` with OCI state accessors.
"""

from __future__ import annotations

from collections.abc import Iterable
from threading import Event
from typing import Any

import oci
from loguru import logger

from skybake.providers.driver import NoInstanceAddressError, NoNetworkAttachmentError
from skybake.providers.wait import Retries, WaitSpec, wait_for_state

from .config import OCI, build_sdk_config, validate

log = logger.bind(provider="oci")

IMAGE_WAITING_STATES = frozenset({"PROVISIONING"})
IMAGE_AVAILABLE = "AVAILABLE"
IMAGE_FAILURE_STATES = frozenset({"DISABLED", "DELETED"})

INSTANCE_FAILURE_STATES = frozenset({"TERMINATING", "TERMINATED"})


class OCIDriver:
    """Stateless OCI driver. Holds only immutable config + SDK clients."""

    def __init__(self, config: OCI, compute_client: Any, network_client: Any) -> None:
        self._config = config
        self._compute = compute_client
        self._network = network_client

    @classmethod
    def create(cls, config: OCI) -> OCIDriver:
        """Validate ``config`` and build SDK clients from it.

        Raises:
            ConfigError: If credentials or placement settings are missing.
        """
        sdk = build_sdk_config(config)
        config = validate(config, sdk)
        log.info(
            "Using region {region}, compartment {compartment}",
            region=sdk["region"],
            compartment=config.compartment_id,
        )
        return cls(
            config=config,
            compute_client=oci.core.ComputeClient(sdk),
            network_client=oci.core.VirtualNetworkClient(sdk),
        )

    @property
    def config(self) -> OCI:
        return self._config

    # -------------------------------------------------------------------------
    # Single-shot operations
    # -------------------------------------------------------------------------

    def create_instance(self, public_key: str) -> str:
        cfg = self._config
        details = oci.core.models.LaunchInstanceDetails(
            availability_domain=cfg.availability_domain,
            compartment_id=cfg.compartment_id,
            shape=cfg.shape,
            source_details=oci.core.models.InstanceSourceViaImageDetails(
                image_id=cfg.base_image_id,
            ),
            create_vnic_details=oci.core.models.CreateVnicDetails(
                subnet_id=cfg.subnet_id,
                assign_public_ip=not cfg.use_private_ip,
            ),
            metadata={"ssh_authorized_keys": public_key},
        )
        instance = self._compute.launch_instance(details).data
        log.info(
            "Launched instance {instance_id} ({shape})",
            instance_id=instance.id,
            shape=cfg.shape,
        )
        return instance.id

    def create_image(self, instance_id: str) -> oci.core.models.Image:
        details = oci.core.models.CreateImageDetails(
            compartment_id=self._config.compartment_id,
            instance_id=instance_id,
            display_name=self._config.image_name,
        )
        image = self._compute.create_image(details).data
        log.info(
            "Requested image {image_id} from instance {instance_id}",
            image_id=image.id,
            instance_id=instance_id,
        )
        return image

    def delete_image(self, image_id: str) -> None:
        self._compute.delete_image(image_id)
        log.info("Deleted image {image_id}", image_id=image_id)

    def terminate_instance(self, instance_id: str) -> None:
        self._compute.terminate_instance(instance_id)
        log.info("Terminating instance {instance_id}", instance_id=instance_id)

    def get_instance_ip(self, instance_id: str) -> str:
        """Return the public or private IP of the instance's first VNIC.

        Raises:
            NoNetworkAttachmentError: No VNIC is attached yet.
            NoInstanceAddressError: The VNIC has no IP of the configured kind.
        """
        attachments = self._compute.list_vnic_attachments(
            compartment_id=self._config.compartment_id,
            instance_id=instance_id,
        ).data
        if not attachments:
            raise NoNetworkAttachmentError(instance_id)

        vnic = self._network.get_vnic(attachments[0].vnic_id).data

        if self._config.use_private_ip:
            kind, address = "private", vnic.private_ip
        else:
            kind, address = "public", vnic.public_ip

        if not address:
            raise NoInstanceAddressError(instance_id, kind)
        return address

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    def get_instance_state(self, instance_id: str) -> str:
        return self._compute.get_instance(instance_id).data.lifecycle_state

    def get_image_state(self, image_id: str) -> str:
        return self._compute.get_image(image_id).data.lifecycle_state

    # -------------------------------------------------------------------------
    # Named waits
    # -------------------------------------------------------------------------

    def wait_for_image_creation(self, image_id: str, *, cancel: Event | None = None) -> None:
        """Wait for a provisioning image to become AVAILABLE."""
        spec = self._wait_spec(
            image_id,
            IMAGE_WAITING_STATES,
            IMAGE_AVAILABLE,
            retries=self._config.image_wait_retries,
            failure_states=IMAGE_FAILURE_STATES,
        )
        wait_for_state(self.get_image_state, spec, cancel=cancel)

    def wait_for_instance_state(
        self,
        instance_id: str,
        waiting_states: Iterable[str],
        terminal_state: str,
        *,
        cancel: Event | None = None,
    ) -> None:
        """Wait for an instance to move from ``waiting_states`` to ``terminal_state``."""
        waiting = frozenset(waiting_states)
        spec = self._wait_spec(
            instance_id,
            waiting,
            terminal_state,
            retries=self._config.instance_wait_retries,
            failure_states=INSTANCE_FAILURE_STATES - waiting - {terminal_state},
        )
        wait_for_state(self.get_instance_state, spec, cancel=cancel)

    def _wait_spec(
        self,
        resource_id: str,
        waiting_states: frozenset[str],
        terminal_state: str,
        *,
        retries: Retries,
        failure_states: frozenset[str],
    ) -> WaitSpec:
        return WaitSpec(
            resource_id=resource_id,
            waiting_states=waiting_states,
            terminal_state=terminal_state,
            retries=retries,
            delay=self._config.wait_delay,
            timeout=self._config.wait_timeout,
            failure_states=failure_states,
        )
