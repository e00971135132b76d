"""Public package surface for squatprobe.

Importing `squatprobe` exposes the high-level API function (`SQUATPROBE`),
the result model and the package version.
"""

from .core import SQUATPROBE
from .models import Config, Verification
from .version import __version__

__all__ = ["SQUATPROBE", "Config", "Verification", "__version__"]
