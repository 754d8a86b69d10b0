"""Tests for image attachment validation (F2).

Tests cover:
- Batch limit rejects the whole batch
- Per-file type and size checks
- Bad files do not block valid siblings
- Admitted images are pending and have empty alt text
"""

import pytest

from manual_editor.core.errors import (
    FileTooLargeError,
    InvalidFileTypeError,
    TooManyImagesError,
)
from manual_editor.core.image_validator import (
    MAX_FILE_SIZE,
    PENDING_SCHEME,
    ImageAttachmentValidator,
    ImageCandidate,
)


def _png(name: str = "shot.png", size: int = 1024, uri: str = "") -> ImageCandidate:
    return ImageCandidate(filename=name, mime_type="image/png", size_bytes=size, local_uri=uri)


@pytest.fixture
def validator():
    return ImageAttachmentValidator()


class TestBatchLimit:
    def test_batch_over_limit_rejected_entirely(self, validator):
        with pytest.raises(TooManyImagesError) as exc_info:
            validator.validate_batch(4, [_png("a.png"), _png("b.png"), _png("c.png")])
        assert exc_info.value.existing == 4
        assert exc_info.value.requested == 3
        assert exc_info.value.limit == 5
        assert exc_info.value.field == "images"

    def test_batch_filling_to_limit_allowed(self, validator):
        result = validator.validate_batch(3, [_png("a.png"), _png("b.png")])
        assert len(result.admitted) == 2

    def test_limit_checked_before_file_checks(self, validator):
        bad = ImageCandidate("doc.pdf", "application/pdf", 10)
        with pytest.raises(TooManyImagesError):
            validator.validate_batch(5, [bad])

    def test_custom_limit(self):
        validator = ImageAttachmentValidator(max_images=2)
        with pytest.raises(TooManyImagesError):
            validator.validate_batch(1, [_png("a.png"), _png("b.png")])


class TestFileChecks:
    def test_oversized_rejected_sibling_admitted(self, validator):
        big = _png("big.png", size=MAX_FILE_SIZE + 1)
        ok = _png("ok.png")
        result = validator.validate_batch(1, [big, ok])

        assert len(result.admitted) == 1
        assert result.has_rejections
        assert isinstance(result.rejections[0], FileTooLargeError)
        assert result.rejections[0].filename == "big.png"

    def test_exactly_max_size_allowed(self, validator):
        result = validator.validate_batch(0, [_png(size=MAX_FILE_SIZE)])
        assert not result.has_rejections

    def test_wrong_type_rejected(self, validator):
        gif = ImageCandidate("anim.gif", "image/gif", 100)
        result = validator.validate_batch(0, [gif])
        assert result.admitted == []
        assert isinstance(result.rejections[0], InvalidFileTypeError)
        assert result.rejections[0].code == "invalid_file_type"

    def test_type_checked_before_size(self, validator):
        with pytest.raises(InvalidFileTypeError):
            validator.check_candidate(ImageCandidate("x.bmp", "image/bmp", MAX_FILE_SIZE * 2))

    @pytest.mark.parametrize("mime", ["image/png", "image/jpeg", "image/jpg", "IMAGE/PNG"])
    def test_allowed_types(self, validator, mime):
        validator.check_candidate(ImageCandidate("f", mime, 10))


class TestAdmittedImages:
    def test_admitted_are_pending_without_alt(self, validator):
        result = validator.validate_batch(0, [_png(uri="file:///tmp/shot.png")])
        image = result.admitted[0]
        assert image.pending is True
        assert image.url == "file:///tmp/shot.png"
        assert image.alt.ar == ""
        assert image.alt.en == ""

    def test_placeholder_url_without_local_uri(self, validator):
        image = validator.validate_batch(0, [_png()]).admitted[0]
        assert image.url == f"{PENDING_SCHEME}{image.id}"

    def test_admitted_ids_unique(self, validator):
        result = validator.validate_batch(0, [_png("a.png"), _png("b.png"), _png("c.png")])
        assert len({img.id for img in result.admitted}) == 3
