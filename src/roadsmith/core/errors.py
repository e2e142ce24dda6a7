"""
Custom exception hierarchy for Roadsmith.

Expected degenerate input (short curves, unreachable terrain, missing
linked-geometry managers) is reported through return values and logging.
These exceptions are reserved for contract violations by the caller and
for failures of external resources such as saved documents.
"""

from typing import Any, Dict, List, Optional


class RoadsmithException(Exception):
    """
    Base exception for all Roadsmith-specific errors.

    Attributes:
        error_code: String identifier for the error type
        message: Human readable error message
        details: Technical details for logging/debugging
        suggestions: Optional list of resolution suggestions
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize RoadsmithException.

        Args:
            message: Human readable error message
            error_code: String identifier for the error type
            details: Technical details for logging
            suggestions: List of suggestions for resolution
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to a dictionary for tool integrations.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
        }

    def __str__(self) -> str:
        """String representation of the exception."""
        return f"{self.error_code}: {self.message}"

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}')"
        )


class ValidationError(RoadsmithException):
    """
    Raised when a caller passes arguments outside an operation's contract.

    Used for out-of-range layer indices, unknown preset names and
    malformed configuration values.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ValidationError.

        Args:
            message: Human readable error message
            field: Name of the argument that failed validation
            details: Technical details about the validation failure
            suggestions: List of suggestions for fixing the call
        """
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=error_details,
            suggestions=suggestions or ["Check the arguments and try again"],
        )


class GeometryError(RoadsmithException):
    """
    Raised when curve geometry cannot be processed.

    Used for malformed node arrays, such as mismatched lengths between
    positions, widths and normals.
    """

    def __init__(
        self,
        message: str,
        curve_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize GeometryError.

        Args:
            message: Human readable error message
            curve_id: Identifier of the offending curve
            details: Technical details about the geometry error
            suggestions: List of suggestions for fixing the geometry
        """
        error_details = details or {}
        if curve_id:
            error_details["curve_id"] = curve_id

        default_suggestions = [
            "Ensure positions, widths and normals have one entry per node",
            "Verify node coordinates are finite",
        ]

        super().__init__(
            message=message,
            error_code="GEOMETRY_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )


class LinkedGeometryError(RoadsmithException):
    """
    Raised when a linked-geometry manager cannot be resolved.

    Only strict lookups raise; the update pass logs and skips instead.
    """

    def __init__(
        self,
        message: str,
        link_kind: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize LinkedGeometryError.

        Args:
            message: Human readable error message
            link_kind: Kind of linked geometry involved
            details: Technical details about the failure
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if link_kind:
            error_details["link_kind"] = link_kind

        super().__init__(
            message=message,
            error_code="LINKED_GEOMETRY_ERROR",
            details=error_details,
            suggestions=suggestions or ["Register a manager for this link kind"],
        )


class PersistenceError(RoadsmithException):
    """
    Raised when a saved document cannot be written or read.

    Used for disk failures, unreadable JSON and documents that fail
    schema validation.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        file_path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize PersistenceError.

        Args:
            message: Human readable error message
            operation: Storage operation that failed (e.g., 'save', 'load')
            file_path: Path to the file involved in the error
            details: Technical details about the storage error
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if operation:
            error_details["operation"] = operation
        if file_path:
            error_details["file_path"] = file_path

        default_suggestions = [
            "Check the file exists and is readable",
            "Verify the document was written by a compatible version",
        ]

        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )


class ConfigurationError(RoadsmithException):
    """
    Raised when engine configuration is invalid.

    Used for missing environment variables or inconsistent settings.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Human readable error message
            config_key: Configuration key that is invalid
            details: Technical details about the configuration error
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if config_key:
            error_details["config_key"] = config_key

        default_suggestions = [
            "Check ROADSMITH_ environment variables are set correctly",
            "Verify .env file syntax",
        ]

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )
