"""OCI provider configuration.

Immutable configuration dataclass for the OCI image builder, plus helpers
that merge it with the on-disk SDK profile and validate the result.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import oci
from loguru import logger

from skybake.providers.wait import Bounded, Retries

log = logger.bind(provider="oci")

DEFAULT_REGION = "us-phoenix-1"
DEFAULT_PROFILE = "DEFAULT"

# SDK config keys that can be overridden from OCI fields
_CREDENTIAL_KEYS = ("user", "tenancy", "region", "fingerprint", "key_file", "pass_phrase")


class ConfigError(ValueError):
    """One or more configuration problems."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = tuple(problems)


@dataclass(frozen=True, slots=True)
class OCI:
    """OCI image builder configuration.

    Credentials come from the SDK profile in ``access_cfg_file`` and can be
    overridden field by field. Placement fields are required; see validate().

    Example:
        >>> from skybake.providers.oci import OCI
        >>> config = OCI(
        ...     availability_domain="aaaa:PHX-AD-1",
        ...     base_image_id="ocid1.image.oc1..xxx",
        ...     shape="VM.Standard2.1",
        ...     subnet_id="ocid1.subnet.oc1..xxx",
        ... )

    Args:
        access_cfg_file: SDK config file. Default: ~/.oci/config.
        access_cfg_file_account: Profile inside the SDK config file.
        user: User OCID override.
        tenancy: Tenancy OCID override.
        region: Region override. Default when unset anywhere: us-phoenix-1.
        fingerprint: API signing key fingerprint override.
        key_file: API signing key path override. ``~`` is expanded.
        pass_phrase: Pass phrase of the signing key.
        use_private_ip: Reach the instance by its private IP.
        availability_domain: Availability domain to launch in.
        compartment_id: Compartment OCID. Default: the tenancy.
        base_image_id: Image the instance is launched from.
        shape: Instance shape.
        image_name: Display name of the captured image. Default: skybake-<unix ts>.
        subnet_id: Subnet the instance's VNIC is placed in.
        wait_delay: Seconds between lifecycle state polls. Default: 10.
        instance_wait_retries: Poll budget for instance state waits.
        image_wait_retries: Poll budget for image creation waits.
        wait_timeout: Wall-clock limit for a single wait in seconds.
    """

    access_cfg_file: str | None = None
    access_cfg_file_account: str = DEFAULT_PROFILE

    user: str | None = None
    tenancy: str | None = None
    region: str | None = None
    fingerprint: str | None = None
    key_file: str | None = None
    pass_phrase: str | None = None
    use_private_ip: bool = False

    availability_domain: str = ""
    compartment_id: str = ""

    base_image_id: str = ""
    shape: str = ""
    image_name: str = ""

    subnet_id: str = ""

    wait_delay: float = 10.0
    instance_wait_retries: Retries = field(default_factory=lambda: Bounded(20))
    image_wait_retries: Retries = field(default_factory=lambda: Bounded(20))
    wait_timeout: float | None = None

    @property
    def type(self) -> str: return "oci"


def default_image_name() -> str:
    return f"skybake-{int(time.time())}"


def _read_profile(config: OCI) -> dict[str, Any]:
    path = config.access_cfg_file or oci.config.DEFAULT_LOCATION
    try:
        return dict(oci.config.from_file(
            file_location=path, profile_name=config.access_cfg_file_account,
        ))
    except (oci.exceptions.ClientError, ValueError) as e:
        # Unreadable profiles are dropped whole; validate() reports the gaps
        log.debug("Ignoring SDK profile {path}: {error}", path=path, error=e)
        return {}


def build_sdk_config(config: OCI) -> dict[str, Any]:
    """Merge the on-disk SDK profile with explicit overrides.

    A missing or incomplete profile is not an error here; validate()
    reports whatever is still missing after the merge.
    """
    sdk = _read_profile(config)

    for key in _CREDENTIAL_KEYS:
        value = getattr(config, key)
        if value:
            sdk[key] = value

    if sdk.get("key_file"):
        sdk["key_file"] = str(Path(sdk["key_file"]).expanduser())

    if not sdk.get("region"):
        sdk["region"] = DEFAULT_REGION

    return sdk


def validate(config: OCI, sdk: Mapping[str, Any]) -> OCI:
    """Check a config and its merged SDK settings, filling derived defaults.

    Returns:
        Copy of ``config`` with compartment and image name resolved.

    Raises:
        ConfigError: Listing every problem found.
    """
    problems: list[str] = []

    for key in ("user", "tenancy", "region", "fingerprint"):
        if not sdk.get(key):
            problems.append(f"'{key}' must be specified")

    key_file = sdk.get("key_file")
    if not key_file and not sdk.get("key_content"):
        problems.append("'key_file' must be specified")
    elif key_file and not Path(key_file).is_file():
        problems.append(f"'key_file' not found: {key_file}")

    required = {
        "availability_domain": config.availability_domain,
        "shape": config.shape,
        "subnet_id": config.subnet_id,
        "base_image_id": config.base_image_id,
    }
    problems.extend(f"'{name}' must be specified" for name, value in required.items() if not value)

    if config.wait_delay < 0:
        problems.append(f"'wait_delay' must not be negative, got {config.wait_delay}")
    if config.wait_timeout is not None and config.wait_timeout <= 0:
        problems.append(f"'wait_timeout' must be positive, got {config.wait_timeout}")

    if problems:
        raise ConfigError(problems)

    return replace(
        config,
        compartment_id=config.compartment_id or sdk["tenancy"],
        image_name=config.image_name or default_image_name(),
    )
