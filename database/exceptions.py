"""Exceptions raised by the database layer."""

class DatabaseError(Exception):
    """Base exception for database errors."""
    pass

class DatabaseConnectionError(DatabaseError):
    """Raised when the connection pool cannot be created."""
    pass

class DatabaseSchemaError(DatabaseError):
    """Raised when schema files are invalid or migrations fail."""
    pass
