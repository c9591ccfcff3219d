"""Error taxonomy shared by the engines and the bridge."""


class DuctworkError(Exception):
    """Base class for every error raised by the ductwork engines."""


class NoDocument(DuctworkError):
    def __init__(self, message: str = "No document is open."):
        super().__init__(message)


class NoSelection(DuctworkError):
    def __init__(self, message: str = "Nothing is selected."):
        super().__init__(message)


class InvalidInput(DuctworkError):
    """Malformed command options or configuration."""


class AssetNotFound(DuctworkError):
    """A replacement, alternate or register asset file does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Asset not found: {path}")


class GeometryDegenerate(DuctworkError):
    """Zero-length or too-short geometry. Skipped, never fatal."""


class HostOperationFailed(DuctworkError):
    """A single host mutation (add, remove, move, relink) failed."""
