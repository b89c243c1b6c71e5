"""Bake an OCI custom image.

Reads placement settings from ./skybake.toml (and ~/.skybake/defaults.toml),
credentials from ~/.oci/config, launches a build instance, captures an
image from it and terminates the instance.

Usage:
    python examples/01_bake_image.py ~/.ssh/id_ed25519.pub
"""

import sys
from pathlib import Path

from skybake import bake_image, setup_logging, teardown_logging
from skybake.config import resolve_logging, resolve_oci
from skybake.providers.oci.driver import OCIDriver


def main(public_key_path: str) -> None:
    handler_ids = setup_logging(resolve_logging())
    try:
        driver = OCIDriver.create(resolve_oci())
        public_key = Path(public_key_path).expanduser().read_text().strip()

        result = bake_image(driver, public_key)
        print(f"Image {result.image_id} is available")
    finally:
        teardown_logging(handler_ids)


if __name__ == "__main__":
    main(sys.argv[1])
