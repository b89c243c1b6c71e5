"""skybake - Bake custom cloud images.

Example:

    from skybake import OCI, bake_image
    from skybake.providers.oci.driver import OCIDriver

    driver = OCIDriver.create(OCI(
        availability_domain="aaaa:PHX-AD-1",
        base_image_id="ocid1.image.oc1.phx.xxx",
        shape="VM.Standard2.1",
        subnet_id="ocid1.subnet.oc1.phx.xxx",
    ))
    result = bake_image(driver, public_key)
    print(result.image_id)
"""

from skybake.lifecycle import BakeResult, bake_image
from skybake.observability.logging import LogConfig, setup_logging, teardown_logging
from skybake.providers import (
    UNBOUNDED,
    Bounded,
    Driver,
    DriverError,
    MaxRetriesExceededError,
    NoInstanceAddressError,
    NoNetworkAttachmentError,
    ResourceFailedError,
    Unbounded,
    UnexpectedStateError,
    WaitCancelledError,
    WaitError,
    WaitSpec,
    WaitTimeoutError,
    wait_for_state,
)
from skybake.providers.oci import OCI, ConfigError

__all__ = [
    "OCI",
    "UNBOUNDED",
    "BakeResult",
    "Bounded",
    "ConfigError",
    "Driver",
    "DriverError",
    "LogConfig",
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
    "bake_image",
    "setup_logging",
    "teardown_logging",
    "wait_for_state",
]
