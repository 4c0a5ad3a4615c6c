"""Storage exceptions shared by the ledger and blob store."""


class StorageError(Exception):
    """Base class for failures of the durable storage layer."""
    pass


class DatabaseError(StorageError):
    """Raised when a database statement or connection fails."""
    pass


class DatabaseSchemaError(DatabaseError):
    """Raised when schema creation or migration fails."""
    pass


class DuplicateCodeError(DatabaseError):
    """Raised when an inserted redemption code already exists."""
    pass
