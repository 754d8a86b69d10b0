"""Image attachment validator.

Stateless checks applied to candidate files before they become step images:
1. Batch limit: existing + batch > max_images rejects the whole batch
2. Per file: MIME type and size; a bad file never blocks its siblings

Alt text is not required here, only at document save time.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from manual_editor.core.errors import (
    FileTooLargeError,
    InvalidFileTypeError,
    TooManyImagesError,
    ValidationError,
)
from manual_editor.core.models import MAX_STEP_IMAGES, BilingualText, StepImage, generate_id

logger = structlog.get_logger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MiB
ALLOWED_MIME_TYPES = ("image/png", "image/jpeg", "image/jpg")
PENDING_SCHEME = "pending://"


@dataclass
class ImageCandidate:
    """A file the author wants to attach."""

    filename: str
    mime_type: str
    size_bytes: int
    local_uri: str = ""


@dataclass
class AttachmentResult:
    """Outcome of validating a batch of candidates."""

    admitted: list[StepImage] = field(default_factory=list)
    rejections: list[ValidationError] = field(default_factory=list)

    @property
    def has_rejections(self) -> bool:
        return bool(self.rejections)


class ImageAttachmentValidator:
    """Validates candidate image files for a step."""

    def __init__(
        self,
        max_images: int = MAX_STEP_IMAGES,
        max_file_size: int = MAX_FILE_SIZE,
        allowed_mime_types: tuple[str, ...] | list[str] = ALLOWED_MIME_TYPES,
    ):
        self.max_images = max_images
        self.max_file_size = max_file_size
        self.allowed_mime_types = tuple(t.lower() for t in allowed_mime_types)

    def check_candidate(self, candidate: ImageCandidate) -> None:
        """Validate a single candidate.

        Raises:
            InvalidFileTypeError: MIME type not allowed
            FileTooLargeError: file exceeds max_file_size
        """
        if candidate.mime_type.lower() not in self.allowed_mime_types:
            raise InvalidFileTypeError(candidate.filename, candidate.mime_type)
        if candidate.size_bytes > self.max_file_size:
            raise FileTooLargeError(
                candidate.filename, candidate.size_bytes, self.max_file_size
            )

    def validate_batch(
        self, existing_count: int, candidates: list[ImageCandidate]
    ) -> AttachmentResult:
        """Validate a batch of candidates against a step's current image count.

        Args:
            existing_count: Images already on the step
            candidates: Files selected in one go

        Returns:
            AttachmentResult with admitted images and per-file rejections

        Raises:
            TooManyImagesError: the batch would exceed the limit; nothing admitted
        """
        if existing_count + len(candidates) > self.max_images:
            logger.info(
                "image_batch_rejected",
                existing=existing_count,
                batch_size=len(candidates),
                limit=self.max_images,
            )
            raise TooManyImagesError(existing_count, len(candidates), self.max_images)

        result = AttachmentResult()
        for candidate in candidates:
            try:
                self.check_candidate(candidate)
            except ValidationError as e:
                logger.info(
                    "image_candidate_rejected",
                    filename=candidate.filename,
                    code=e.code,
                )
                result.rejections.append(e)
                continue

            image_id = generate_id()
            result.admitted.append(
                StepImage(
                    id=image_id,
                    url=candidate.local_uri or f"{PENDING_SCHEME}{image_id}",
                    alt=BilingualText(),
                    pending=True,
                )
            )

        logger.debug(
            "image_batch_validated",
            admitted=len(result.admitted),
            rejected=len(result.rejections),
        )
        return result
