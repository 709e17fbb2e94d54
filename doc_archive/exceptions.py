"""
Custom exceptions for the document archive.
Provides specific exception types for different error scenarios.
"""
from typing import Optional

class ArchiveError(Exception):
    """Base exception class for document archive errors."""
    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

class ConfigurationError(ArchiveError):
    """Raised when there is an error in configuration."""
    pass

class DatabaseError(ArchiveError):
    """Raised when there is a database-related error."""
    pass

class ValidationError(ArchiveError):
    """Raised when input validation fails."""
    pass

class DocumentNotFoundError(ArchiveError):
    """Raised when a document id is not present in the manifest."""
    pass

class ManifestError(ArchiveError):
    """Raised when the document manifest is unreadable or incomplete."""
    pass
