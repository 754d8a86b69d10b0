"""Tests for the document editor controller (F5).

Tests cover:
- Draft recovery on start
- Mutations schedule debounced draft writes
- Autosave disabled once the manual has an id
- Image attachment through the controller
- Save flow: validation, in-flight guard, transient failure, success
- Discard
"""

import asyncio

import pytest

from manual_editor.core.draft_persistence import (
    DRAFT_KEY,
    DraftPersistenceManager,
    FileDraftStore,
    MemoryDraftStore,
    serialize_draft,
)
from manual_editor.core.editor import DocumentEditorController, EditorEventType
from manual_editor.core.errors import (
    ImageNotFoundError,
    StructuralInvariantViolation,
    TooManyImagesError,
    TransientError,
)
from manual_editor.core.image_validator import ImageCandidate
from manual_editor.core.models import BeneficiaryType, Lang, ManualDocument, StepScope
from manual_editor.core.preview import PreviewKind


class FakeApiClient:
    """Async stand-in for ManualsApiClient."""

    def __init__(self):
        self.saved: list[dict] = []
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.remote: dict[str, ManualDocument] = {}

    async def save_manual(self, document):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        self.saved.append(document.to_dict())
        result = ManualDocument.from_dict(document.to_dict())
        result.id = document.id or f"m-{len(self.saved)}"
        return result

    async def get_manual(self, manual_id):
        if manual_id not in self.remote:
            raise TransientError("not reachable")
        return self.remote[manual_id]


@pytest.fixture
def store():
    return MemoryDraftStore()


@pytest.fixture
def api():
    return FakeApiClient()


@pytest.fixture
def controller(store, scheduler, api):
    drafts = DraftPersistenceManager(store, scheduler, debounce_seconds=1.0)
    return DocumentEditorController(drafts, api_client=api, ui_lang=Lang.EN)


def _event_types(controller):
    return [e.event_type for e in controller.events]


def _fill(controller):
    """Make the current document valid for save."""
    controller.set_title(ar="دليل", en="Manual")
    step = controller.add_step(StepScope.SHARED)
    controller.update_step(step.id, {"title_ar": "خطوة", "title_en": "Step"})
    return step


class TestStart:
    def test_start_without_draft(self, controller):
        doc = controller.start_new()
        assert doc == ManualDocument()
        assert controller.events == []
        assert controller.autosave_enabled

    def test_start_recovers_draft(self, controller, store, sample_document):
        store.slots[DRAFT_KEY] = serialize_draft(sample_document, updated_at="2024-01-01T00:00:00Z")
        doc = controller.start_new()
        assert doc == sample_document
        event = controller.events[0]
        assert event.event_type is EditorEventType.DRAFT_LOADED
        assert event.message == "Draft loaded from auto-save"
        assert event.data["updated_at"] == "2024-01-01T00:00:00Z"

    def test_start_with_corrupt_draft(self, controller, store):
        store.slots[DRAFT_KEY] = "garbage"
        assert controller.start_new() == ManualDocument()
        assert DRAFT_KEY not in store.slots

    def test_start_with_undecodable_draft_file(self, tmp_path, scheduler):
        (tmp_path / f"{DRAFT_KEY}.json").write_bytes(b'{"$schema": "\xff\xfe garbage')
        drafts = DraftPersistenceManager(FileDraftStore(tmp_path), scheduler)
        controller = DocumentEditorController(drafts)

        assert controller.start_new() == ManualDocument()
        assert controller.events == []
        assert not (tmp_path / f"{DRAFT_KEY}.json").exists()

    def test_open_saved_document_disables_autosave(self, controller, store, scheduler):
        controller.open_document(ManualDocument(id="m-9"))
        controller.set_title(en="Edited")
        scheduler.advance(5)
        assert not controller.autosave_enabled
        assert store.write_count == 0

    @pytest.mark.asyncio
    async def test_open_remote(self, controller, api):
        api.remote["m-3"] = ManualDocument(id="m-3")
        doc = await controller.open_remote("m-3")
        assert doc.id == "m-3"
        assert controller.document is doc

    @pytest.mark.asyncio
    async def test_open_remote_failure_keeps_document(self, controller):
        controller.start_new()
        controller.set_title(en="Keep me")
        with pytest.raises(TransientError):
            await controller.open_remote("missing")
        assert controller.document.title.en == "Keep me"


class TestAutosave:
    def test_title_burst_single_write(self, controller, store, scheduler):
        controller.start_new()
        controller.set_title(en="A")
        controller.set_title(en="AB")
        controller.set_title(en="ABC")
        scheduler.advance(1.0)

        assert store.write_count == 1
        assert controller.draft_manager.load().document.title.en == "ABC"
        assert _event_types(controller) == [EditorEventType.DRAFT_SAVED]

    def test_no_write_before_start(self, controller, store, scheduler):
        controller.set_title(en="A")
        scheduler.advance(5)
        assert store.write_count == 0

    def test_noop_move_does_not_schedule(self, controller, scheduler):
        controller.start_new()
        step = controller.add_step(StepScope.SHARED)
        scheduler.advance(5)
        assert controller.move_step(step.id, "up") is False
        assert scheduler.pending == []

    def test_toggle_beneficiary_keeps_steps(self, controller):
        controller.start_new()
        step = controller.add_step(StepScope.BENEFICIARY, BeneficiaryType.BUSINESS)
        assert controller.toggle_beneficiary(BeneficiaryType.BUSINESS) is True
        assert controller.toggle_beneficiary("BUSINESS") is False
        assert controller.document.selected_beneficiaries == []
        assert controller.document.find_step(step.id) is not None

    def test_set_beneficiaries_dedupes(self, controller):
        controller.start_new()
        controller.set_beneficiaries(["INDIVIDUAL", BeneficiaryType.INDIVIDUAL, "BUSINESS"])
        assert controller.document.selected_beneficiaries == [
            BeneficiaryType.INDIVIDUAL,
            BeneficiaryType.BUSINESS,
        ]

    def test_invalid_mutation_leaves_document(self, controller):
        controller.start_new()
        with pytest.raises(StructuralInvariantViolation):
            controller.add_step(StepScope.BENEFICIARY)
        assert controller.document.steps == []


class TestImages:
    def test_attach_and_remove(self, controller):
        controller.start_new()
        step = controller.add_step(StepScope.SHARED)
        result = controller.attach_images(
            step.id,
            [
                ImageCandidate("a.png", "image/png", 100),
                ImageCandidate("b.gif", "image/gif", 100),
            ],
        )
        assert len(step.images) == 1
        assert len(result.rejections) == 1

        image = step.images[0]
        controller.update_image_alt(step.id, image.id, ar="صورة", en="Picture")
        assert image.alt.is_complete()

        controller.remove_image(step.id, image.id)
        assert step.images == []

    def test_batch_over_limit_attaches_nothing(self, controller):
        controller.start_new()
        step = controller.add_step(StepScope.SHARED)
        controller.attach_images(step.id, [ImageCandidate(f"{n}.png", "image/png", 1) for n in range(4)])
        with pytest.raises(TooManyImagesError):
            controller.attach_images(
                step.id, [ImageCandidate(f"x{n}.png", "image/png", 1) for n in range(3)]
            )
        assert len(step.images) == 4

    def test_unknown_image(self, controller):
        controller.start_new()
        step = controller.add_step(StepScope.SHARED)
        with pytest.raises(ImageNotFoundError):
            controller.remove_image(step.id, "nope")


class TestSave:
    @pytest.mark.asyncio
    async def test_validation_failure_skips_api(self, controller, api):
        controller.start_new()
        outcome = await controller.save()
        assert outcome.success is False
        assert [i.code for i in outcome.issues] == ["title_required"]
        assert api.saved == []
        assert _event_types(controller) == [EditorEventType.VALIDATION_FAILED]

    @pytest.mark.asyncio
    async def test_success_clears_draft_and_adopts_id(self, controller, store, scheduler, api):
        controller.start_new()
        _fill(controller)
        controller.draft_manager.flush(controller.document)
        assert DRAFT_KEY in store.slots

        outcome = await controller.save()

        assert outcome.success is True
        assert outcome.manual_id == "m-1"
        assert controller.document.id == "m-1"
        assert DRAFT_KEY not in store.slots
        assert not controller.is_saving
        assert not controller.autosave_enabled
        assert EditorEventType.SAVE_SUCCEEDED in _event_types(controller)

        # Further edits on the saved manual never recreate the draft
        controller.set_title(en="After save")
        scheduler.advance(5)
        assert DRAFT_KEY not in store.slots

    @pytest.mark.asyncio
    async def test_pending_draft_write_cancelled_by_save(self, controller, store, scheduler):
        controller.start_new()
        _fill(controller)
        assert scheduler.pending
        await controller.save()
        scheduler.advance(5)
        assert store.write_count == 0

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_state(self, controller, store, api):
        controller.start_new()
        _fill(controller)
        controller.draft_manager.flush(controller.document)
        api.fail_with = TransientError("timeout")

        outcome = await controller.save()

        assert outcome.success is False
        assert outcome.retryable is True
        assert controller.document.id is None
        assert DRAFT_KEY in store.slots
        assert not controller.is_saving
        failed = controller.events[-1]
        assert failed.event_type is EditorEventType.SAVE_FAILED
        assert failed.data["retryable"] is True

    @pytest.mark.asyncio
    async def test_non_transient_failure_propagates(self, controller, api):
        controller.start_new()
        _fill(controller)
        api.fail_with = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            await controller.save()
        assert not controller.is_saving
        assert controller.events[-1].data["retryable"] is False

    @pytest.mark.asyncio
    async def test_second_save_while_in_flight_ignored(self, controller, api):
        controller.start_new()
        _fill(controller)
        api.gate = asyncio.Event()

        first = asyncio.create_task(controller.save())
        await asyncio.sleep(0)
        assert controller.is_saving

        assert await controller.save() is None

        api.gate.set()
        outcome = await first
        assert outcome.success is True
        assert len(api.saved) == 1

    @pytest.mark.asyncio
    async def test_discard_during_save_keeps_new_session(self, controller, api, store, scheduler):
        controller.start_new()
        _fill(controller)
        api.gate = asyncio.Event()

        pending_save = asyncio.create_task(controller.save())
        await asyncio.sleep(0)
        sent = controller.document

        controller.discard()
        controller.set_title(en="brand new manual")
        scheduler.advance(1.0)
        assert DRAFT_KEY in store.slots

        api.gate.set()
        outcome = await pending_save

        assert outcome.success is True
        assert outcome.manual_id == "m-1"
        assert sent.id == "m-1"
        assert controller.document.id is None
        assert controller.document.title.en == "brand new manual"
        assert controller.autosave_enabled
        assert DRAFT_KEY in store.slots
        assert EditorEventType.SAVE_SUCCEEDED not in _event_types(controller)

    @pytest.mark.asyncio
    async def test_start_new_during_save_keeps_recovered_draft(
        self, controller, api, store, sample_document
    ):
        controller.start_new()
        _fill(controller)
        api.gate = asyncio.Event()

        pending_save = asyncio.create_task(controller.save())
        await asyncio.sleep(0)
        store.slots[DRAFT_KEY] = serialize_draft(sample_document)
        controller.start_new()

        api.gate.set()
        await pending_save

        assert controller.document == sample_document
        assert DRAFT_KEY in store.slots

    @pytest.mark.asyncio
    async def test_open_saved_document_during_save_clears_old_draft(self, controller, api, store):
        controller.start_new()
        _fill(controller)
        controller.draft_manager.flush(controller.document)
        api.gate = asyncio.Event()

        pending_save = asyncio.create_task(controller.save())
        await asyncio.sleep(0)
        controller.open_document(ManualDocument(id="m-9"))

        api.gate.set()
        await pending_save

        assert controller.document.id == "m-9"
        assert DRAFT_KEY not in store.slots

    @pytest.mark.asyncio
    async def test_update_existing_keeps_id(self, controller, api, store):
        doc = ManualDocument(id="m-7")
        controller.open_document(doc)
        _fill(controller)
        store.slots[DRAFT_KEY] = "unrelated draft"

        outcome = await controller.save()

        assert outcome.manual_id == "m-7"
        assert store.slots[DRAFT_KEY] == "unrelated draft"


class TestDiscardAndPreview:
    def test_discard(self, controller, store, scheduler):
        controller.start_new()
        controller.set_title(en="Temp")
        controller.draft_manager.flush(controller.document)
        controller.discard()
        scheduler.advance(5)
        assert controller.document == ManualDocument()
        assert DRAFT_KEY not in store.slots
        assert controller.events[-1].event_type is EditorEventType.DRAFT_DISCARDED

    def test_preview_uses_editor_ui_language(self, controller, sample_document):
        controller.open_document(sample_document)
        preview = controller.preview(Lang.AR)
        assert preview.kind is PreviewKind.SINGLE
        assert preview.views[0].label == "Business"
        assert preview.views[0].title == "دليل الخدمة"

    def test_on_event_callback(self, store, scheduler):
        seen = []
        drafts = DraftPersistenceManager(store, scheduler)
        controller = DocumentEditorController(drafts, on_event=seen.append)
        controller.start_new()
        controller.discard()
        assert [e.event_type for e in seen] == [EditorEventType.DRAFT_DISCARDED]
