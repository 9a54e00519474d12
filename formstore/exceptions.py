class FormStoreError(Exception):
    """Base exception for formstore errors."""
    pass


class PathError(FormStoreError, ValueError):
    """Exception raised when a field path cannot be parsed."""
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path {path!r}: {reason}")


class FormDefinitionError(FormStoreError, ValueError):
    """Exception raised when a form definition is incomplete or inconsistent."""
    pass


class StoreError(FormStoreError):
    """Base exception for store-related errors."""
    pass


class RecordNotFoundError(StoreError, KeyError):
    """Exception raised when a store has no record under a key."""
    def __init__(self, key):
        self.key = key
        super().__init__(f"Record '{key}' not found.")

    def __str__(self):
        return self.args[0]
