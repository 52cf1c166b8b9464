class SaberchartError(Exception):
    """Base class for every error raised by saberchart."""


class InsufficientDataError(SaberchartError, ValueError):
    """The audio is empty, too short or has too few peaks to chart."""


class InvalidStateError(SaberchartError, LookupError):
    """A grid, direction or catalog lookup failed. Indicates a programming error."""


class ConfigError(SaberchartError, ValueError):
    """Malformed pipeline configuration or difficulty profile overrides."""


class AudioDecodeError(SaberchartError, RuntimeError):
    """The audio decoder could not produce PCM for a file."""


class AudioEncodeError(SaberchartError, RuntimeError):
    """The audio encoder could not write the song file."""
