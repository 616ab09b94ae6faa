# terrain_generator/errors.py

"""Exception types raised by the terrain generator."""


class InvalidConfigurationError(ValueError):
    """A generation parameter is out of range. Raised before any work starts."""


class MeshBuildIncompleteError(RuntimeError):
    """The result of an incremental mesh build was requested before it finished."""
