"""Save-time validation of a manual document.

Checks that are deliberately skipped while editing (bilingual titles,
image alt text) are enforced here before the document leaves the editor.
"""

from __future__ import annotations

from manual_editor.core.errors import DocumentValidationError, ValidationIssue
from manual_editor.core.i18n import translate
from manual_editor.core.models import MAX_STEP_IMAGES, Lang, ManualDocument


def validate_document(
    document: ManualDocument,
    lang: Lang | str = Lang.EN,
    max_images: int = MAX_STEP_IMAGES,
) -> list[ValidationIssue]:
    """Collect every save-time problem in the document.

    Args:
        document: Document to check
        lang: Language of the issue messages
        max_images: Per-step image limit

    Returns:
        List of issues, empty when the document can be saved
    """
    issues: list[ValidationIssue] = []

    if not document.title.is_complete():
        issues.append(
            ValidationIssue("title", "title_required", translate("title_required", lang))
        )

    for step in document.steps:
        prefix = f"steps[{step.id}]"
        if not step.title.is_complete():
            issues.append(
                ValidationIssue(
                    f"{prefix}.title",
                    "step_title_required",
                    translate("step_title_required", lang),
                )
            )
        if len(step.images) > max_images:
            issues.append(
                ValidationIssue(
                    f"{prefix}.images",
                    "too_many_images",
                    translate("max_images", lang, limit=max_images),
                )
            )
        for image in step.images:
            if not image.alt.is_complete():
                issues.append(
                    ValidationIssue(
                        f"{prefix}.images[{image.id}].alt",
                        "alt_text_required",
                        translate("alt_text_required", lang),
                    )
                )

    return issues


def ensure_document_valid(
    document: ManualDocument,
    lang: Lang | str = Lang.EN,
    max_images: int = MAX_STEP_IMAGES,
) -> None:
    """Raise if the document cannot be saved.

    Raises:
        DocumentValidationError: carrying every issue found
    """
    issues = validate_document(document, lang=lang, max_images=max_images)
    if issues:
        raise DocumentValidationError(issues)
