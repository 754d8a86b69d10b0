"""Error taxonomy for the manual editor.

- ValidationError: user-correctable, surfaced inline at the offending field
- TransientError: network/API failure, retryable, document state preserved
- CorruptDraftError: internal only, resolved by discarding the draft
- StructuralInvariantViolation: rejected at the operation boundary
"""

from __future__ import annotations

from dataclasses import dataclass


class ManualEditorError(Exception):
    """Base class for all manual editor errors."""


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(ManualEditorError):
    """User-correctable error tied to a field."""

    code = "invalid"

    def __init__(self, message: str, field: str | None = None, code: str | None = None):
        self.field = field
        if code is not None:
            self.code = code
        super().__init__(message)


class TooManyImagesError(ValidationError):
    """A step would end up with more images than allowed."""

    code = "too_many_images"

    def __init__(self, existing: int, requested: int, limit: int):
        self.existing = existing
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Cannot attach {requested} image(s) to a step with {existing}; "
            f"maximum is {limit}",
            field="images",
        )


class InvalidFileTypeError(ValidationError):
    """Candidate image has an unsupported MIME type."""

    code = "invalid_file_type"

    def __init__(self, filename: str, mime_type: str):
        self.filename = filename
        self.mime_type = mime_type
        super().__init__(f"{filename}: unsupported file type '{mime_type}'", field=filename)


class FileTooLargeError(ValidationError):
    """Candidate image exceeds the size limit."""

    code = "file_too_large"

    def __init__(self, filename: str, size_bytes: int, limit_bytes: int):
        self.filename = filename
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"{filename}: {size_bytes} bytes exceeds limit of {limit_bytes}",
            field=filename,
        )


@dataclass
class ValidationIssue:
    """A single save-time validation problem."""

    field: str
    code: str
    message: str


class DocumentValidationError(ValidationError):
    """Document failed save-time validation."""

    code = "document_invalid"

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__(
            "Document is not ready to save:\n"
            + "\n".join(f"  - {i.field}: {i.message}" for i in issues)
        )


# =============================================================================
# STRUCTURE
# =============================================================================


class StructuralInvariantViolation(ManualEditorError):
    """Operation would break a structural invariant of the document.

    Also used for invalid arguments at operation boundaries.
    """


InvalidArgumentError = StructuralInvariantViolation


class StepNotFoundError(ManualEditorError):
    """No step with the given id."""

    def __init__(self, step_id: str):
        self.step_id = step_id
        super().__init__(f"Step '{step_id}' not found")


class ImageNotFoundError(ManualEditorError):
    """No image with the given id on the step."""

    def __init__(self, step_id: str, image_id: str):
        self.step_id = step_id
        self.image_id = image_id
        super().__init__(f"Image '{image_id}' not found on step '{step_id}'")


# =============================================================================
# PERSISTENCE / REMOTE
# =============================================================================


class CorruptDraftError(ManualEditorError):
    """Persisted draft payload could not be parsed."""


class TransientError(ManualEditorError):
    """Network or API failure; the operation may be retried."""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
