"""Build metadata exposed at runtime.

APP_VERSION is set via an environment variable in CI and otherwise falls back
to the installed distribution version.
"""

import os
from importlib import metadata

DISTRIBUTION_NAME = "async-battles"


def _installed_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
