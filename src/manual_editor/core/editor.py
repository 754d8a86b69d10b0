"""Document editor controller.

Owns one in-progress ManualDocument and orchestrates the step repository,
image validator, draft persistence and preview composer around it.

Session start:
- start_new(): fresh manual, recovers the autosaved draft if there is one
- open_document(doc): loaded manual; autosave is off once it has an id
- open_remote(id): fetch from the API, then open_document

Every successful mutation schedules a debounced draft write. The remote
save is async and guarded by a single SAVING flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Iterable

import structlog

from manual_editor.core.document_validator import validate_document
from manual_editor.core.draft_persistence import DraftPersistenceManager
from manual_editor.core.errors import (
    ImageNotFoundError,
    TransientError,
    ValidationIssue,
)
from manual_editor.core.i18n import translate
from manual_editor.core.image_validator import (
    AttachmentResult,
    ImageAttachmentValidator,
    ImageCandidate,
)
from manual_editor.core.models import (
    BeneficiaryType,
    Lang,
    ManualDocument,
    Step,
    StepScope,
)
from manual_editor.core.preview import Preview, PreviewComposer
from manual_editor.core.step_repository import Direction, StepRepository

logger = structlog.get_logger(__name__)


# =============================================================================
# EVENTS
# =============================================================================


class EditorEventType(Enum):
    """Notifications emitted to the caller."""

    DRAFT_LOADED = auto()  # data: updated_at
    DRAFT_SAVED = auto()  # data: updated_at
    DRAFT_DISCARDED = auto()
    SAVE_STARTED = auto()
    SAVE_SUCCEEDED = auto()  # data: manual_id
    SAVE_FAILED = auto()  # data: error, retryable
    VALIDATION_FAILED = auto()  # data: issues


@dataclass
class EditorEvent:
    """Event emitted by the editor controller."""

    event_type: EditorEventType
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)


class SaveState(Enum):
    IDLE = auto()
    SAVING = auto()


@dataclass
class SaveOutcome:
    """Result of a save attempt."""

    success: bool
    manual_id: str | None = None
    issues: list[ValidationIssue] = field(default_factory=list)
    error: str | None = None
    retryable: bool = False


# =============================================================================
# CONTROLLER
# =============================================================================


class DocumentEditorController:
    """Editing session around a single ManualDocument."""

    def __init__(
        self,
        draft_manager: DraftPersistenceManager,
        api_client: Any = None,
        image_validator: ImageAttachmentValidator | None = None,
        preview_composer: PreviewComposer | None = None,
        ui_lang: Lang | str = Lang.AR,
        on_event: Callable[[EditorEvent], None] | None = None,
    ):
        self.draft_manager = draft_manager
        self.api_client = api_client
        self.image_validator = image_validator or ImageAttachmentValidator()
        self.preview_composer = preview_composer or PreviewComposer()
        self.ui_lang = Lang(ui_lang)
        self.on_event = on_event

        self.document = ManualDocument()
        self.save_state = SaveState.IDLE
        self.events: list[EditorEvent] = []
        self._started = False

        self.draft_manager.on_write = self._draft_written

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def repository(self) -> StepRepository:
        return StepRepository(self.document, max_images=self.image_validator.max_images)

    @property
    def is_saving(self) -> bool:
        return self.save_state is SaveState.SAVING

    @property
    def autosave_enabled(self) -> bool:
        return self._started and self.draft_manager.applies_to(self.document)

    def _emit(self, event_type: EditorEventType, message_key: str, **data: Any) -> EditorEvent:
        event = EditorEvent(
            event_type=event_type,
            message=translate(message_key, self.ui_lang),
            data=data,
        )
        self.events.append(event)
        logger.debug("editor_event", event_type=event_type.name, **data)
        if self.on_event is not None:
            self.on_event(event)
        return event

    def _changed(self) -> None:
        if self.autosave_enabled:
            self.draft_manager.schedule_write(self.document)

    def _draft_written(self, updated_at: str) -> None:
        self._emit(EditorEventType.DRAFT_SAVED, "draft_saved", updated_at=updated_at)

    # -------------------------------------------------------------------------
    # Session start
    # -------------------------------------------------------------------------

    def start_new(self) -> ManualDocument:
        """Begin editing a new manual, recovering the autosaved draft if any."""
        self.draft_manager.cancel_pending()
        draft = self.draft_manager.load()
        if draft is None:
            self.document = ManualDocument()
        else:
            self.document = draft.document
            self._emit(EditorEventType.DRAFT_LOADED, "draft_loaded", updated_at=draft.updated_at)
        self._started = True
        logger.info("editor_started", recovered=draft is not None)
        return self.document

    def open_document(self, document: ManualDocument) -> ManualDocument:
        """Edit a document restored from a loaded source."""
        self.draft_manager.cancel_pending()
        self.document = document
        self._started = True
        logger.info("editor_opened", manual_id=document.id, steps=len(document.steps))
        return self.document

    async def open_remote(self, manual_id: str) -> ManualDocument:
        """Fetch a saved manual and edit it.

        Raises:
            TransientError: fetch failed; the current document is kept
        """
        document = await self.api_client.get_manual(manual_id)
        return self.open_document(document)

    # -------------------------------------------------------------------------
    # Document fields
    # -------------------------------------------------------------------------

    def set_title(self, ar: str | None = None, en: str | None = None) -> None:
        if ar is not None:
            self.document.title.ar = ar
        if en is not None:
            self.document.title.en = en
        self._changed()

    def set_overview(self, ar: str | None = None, en: str | None = None) -> None:
        if ar is not None:
            self.document.overview.ar = ar
        if en is not None:
            self.document.overview.en = en
        self._changed()

    def toggle_beneficiary(self, beneficiary: BeneficiaryType) -> bool:
        """Select or deselect a beneficiary type. Steps are never deleted.

        Returns:
            True if the beneficiary is now selected
        """
        beneficiary = BeneficiaryType(beneficiary)
        selected = self.document.selected_beneficiaries
        if beneficiary in selected:
            selected.remove(beneficiary)
            now_selected = False
        else:
            selected.append(beneficiary)
            now_selected = True
        self._changed()
        return now_selected

    def set_beneficiaries(self, beneficiaries: Iterable[BeneficiaryType]) -> None:
        selected: list[BeneficiaryType] = []
        for beneficiary in beneficiaries:
            beneficiary = BeneficiaryType(beneficiary)
            if beneficiary not in selected:
                selected.append(beneficiary)
        self.document.selected_beneficiaries = selected
        self._changed()

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def add_step(
        self, scope: StepScope, beneficiary_type: BeneficiaryType | None = None
    ) -> Step:
        step = self.repository.add_step(scope, beneficiary_type)
        self._changed()
        return step

    def update_step(self, step_id: str, changes: dict[str, Any]) -> Step:
        step = self.repository.update_step(step_id, changes)
        self._changed()
        return step

    def delete_step(self, step_id: str) -> Step:
        step = self.repository.delete_step(step_id)
        self._changed()
        return step

    def move_step(self, step_id: str, direction: Direction) -> bool:
        moved = self.repository.move_step(step_id, direction)
        if moved:
            self._changed()
        return moved

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def attach_images(
        self, step_id: str, candidates: list[ImageCandidate]
    ) -> AttachmentResult:
        """Validate candidates and append the admitted ones to the step.

        Raises:
            StepNotFoundError: unknown step
            TooManyImagesError: the batch would exceed the limit; nothing attached
        """
        step = self.repository.get(step_id)
        result = self.image_validator.validate_batch(len(step.images), candidates)
        if result.admitted:
            step.images.extend(result.admitted)
            self._changed()
        logger.info(
            "images_attached",
            step_id=step_id,
            admitted=len(result.admitted),
            rejected=len(result.rejections),
        )
        return result

    def remove_image(self, step_id: str, image_id: str) -> None:
        step = self.repository.get(step_id)
        image = step.find_image(image_id)
        if image is None:
            raise ImageNotFoundError(step_id, image_id)
        step.images.remove(image)
        self._changed()

    def update_image_alt(
        self, step_id: str, image_id: str, ar: str | None = None, en: str | None = None
    ) -> None:
        step = self.repository.get(step_id)
        image = step.find_image(image_id)
        if image is None:
            raise ImageNotFoundError(step_id, image_id)
        if ar is not None:
            image.alt.ar = ar
        if en is not None:
            image.alt.en = en
        self._changed()

    # -------------------------------------------------------------------------
    # Preview
    # -------------------------------------------------------------------------

    def preview(
        self,
        lang: Lang | str,
        beneficiaries: Iterable[BeneficiaryType] | None = None,
        ui_lang: Lang | str | None = None,
    ) -> Preview:
        """Compose the preview in ``lang``; chrome follows the editor UI language."""
        return self.preview_composer.compose(
            self.document,
            lang,
            beneficiaries=beneficiaries,
            ui_lang=ui_lang if ui_lang is not None else self.ui_lang,
        )

    # -------------------------------------------------------------------------
    # Save / discard
    # -------------------------------------------------------------------------

    def validate_for_save(self) -> list[ValidationIssue]:
        return validate_document(
            self.document, lang=self.ui_lang, max_images=self.image_validator.max_images
        )

    async def save(self) -> SaveOutcome | None:
        """Save the document remotely.

        Returns:
            SaveOutcome, or None when a save is already in flight
        """
        if self.is_saving:
            logger.info("save_ignored_in_flight", manual_id=self.document.id)
            return None

        issues = self.validate_for_save()
        if issues:
            self._emit(
                EditorEventType.VALIDATION_FAILED,
                "validation_failed",
                issues=[issue.field for issue in issues],
            )
            return SaveOutcome(success=False, manual_id=self.document.id, issues=issues)

        self.save_state = SaveState.SAVING
        self._emit(EditorEventType.SAVE_STARTED, "saving")
        document = self.document
        was_new = document.is_new
        try:
            saved = await self.api_client.save_manual(document)
        except TransientError as e:
            logger.warning("manual_save_failed", manual_id=document.id, error=str(e))
            self._emit(
                EditorEventType.SAVE_FAILED, "save_failed", error=str(e), retryable=True
            )
            return SaveOutcome(
                success=False, manual_id=document.id, error=str(e), retryable=True
            )
        except Exception as e:
            logger.error("manual_save_rejected", manual_id=document.id, error=str(e))
            self._emit(
                EditorEventType.SAVE_FAILED, "save_failed", error=str(e), retryable=False
            )
            raise
        finally:
            self.save_state = SaveState.IDLE

        manual_id = saved.id if saved is not None and saved.id else document.id
        document.id = manual_id

        # Session changed while the request was in flight. The draft slot
        # is only ours to clear if the new session is not autosaving into it.
        if self.document is not document:
            if was_new and not self.draft_manager.applies_to(self.document):
                self.draft_manager.clear()
            logger.info("manual_saved_after_session_change", manual_id=manual_id)
            return SaveOutcome(success=True, manual_id=manual_id)

        if was_new:
            self.draft_manager.clear()

        logger.info("manual_saved", manual_id=manual_id, created=was_new)
        self._emit(EditorEventType.SAVE_SUCCEEDED, "save_succeeded", manual_id=manual_id)
        return SaveOutcome(success=True, manual_id=manual_id)

    def discard(self) -> ManualDocument:
        """Throw away the in-progress document and its draft."""
        self.draft_manager.clear()
        self.document = ManualDocument()
        self._emit(EditorEventType.DRAFT_DISCARDED, "draft_discarded")
        return self.document
