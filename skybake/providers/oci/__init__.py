"""Oracle Cloud Infrastructure provider for skybake.

Builds custom images on OCI Compute: launch an instance from a base image,
capture an image from it, then clean up.

NOTE: Only config classes are imported at package level.
For the driver, import explicitly:

    from skybake.providers.oci.driver import OCIDriver

Credentials are read from the OCI SDK config file (~/.oci/config by
default) and may be overridden on the OCI config object.
"""

from __future__ import annotations

from .config import OCI, ConfigError

__all__ = [
    "OCI",
    "ConfigError",
]
