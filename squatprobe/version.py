"""Version metadata for squatprobe."""

__version__ = "1.0.0"
