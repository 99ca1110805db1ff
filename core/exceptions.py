# core/exceptions.py


class BiblioPiError(ValueError):
    """Base class for errors raised to the edge of the application"""


class SnapshotError(BiblioPiError):
    """A backup or persisted snapshot could not be parsed or stored"""


class BulkImportError(BiblioPiError):
    """An uploaded import file could not be read"""


class ProfileValidationError(BiblioPiError):
    """A family member profile failed validation"""


class LocationValidationError(BiblioPiError):
    """A location would break the room/shelf/spot tree"""


class EnrichmentError(BiblioPiError):
    """An AI provider call failed"""

    def __init__(self, message: str = "Analysis failed"):
        super().__init__(message)
