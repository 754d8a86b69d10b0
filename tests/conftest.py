"""Pytest configuration for phased testing.

Tests are organized by phase (f1, f2, ..., f6).
Only tests for the current phase and completed phases should run.
Future phase tests are automatically skipped.
"""

from typing import Callable

import pytest

from manual_editor.core.models import (
    BeneficiaryType,
    BilingualText,
    ManualDocument,
    Step,
    StepImage,
    StepScope,
)

# Current implementation phase
CURRENT_PHASE = 6


def pytest_collection_modifyitems(config, items):
    """Skip tests from phases that haven't been implemented yet."""
    for item in items:
        # Extract phase from path (tests/f2/... -> 2)
        parts = item.fspath.strpath.split("/")
        for part in parts:
            if part.startswith("f") and part[1:].isdigit():
                test_phase = int(part[1:])
                if test_phase > CURRENT_PHASE:
                    item.add_marker(
                        pytest.mark.skip(
                            reason=f"Phase F{test_phase} not yet implemented (current: F{CURRENT_PHASE})"
                        )
                    )
                break


# =============================================================================
# FAKE SCHEDULER
# =============================================================================


class FakeHandle:
    """Handle returned by FakeScheduler.schedule."""

    def __init__(self, due: float, fn: Callable[[], None]):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic scheduler driven by advance()."""

    def __init__(self):
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def schedule(self, fn: Callable[[], None], delay: float) -> FakeHandle:
        handle = FakeHandle(self.now + delay, fn)
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [h for h in self.handles if not h.cancelled and h.due <= self.now]
        for handle in due:
            self.handles.remove(handle)
            handle.fn()

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


# =============================================================================
# SAMPLE DOCUMENTS
# =============================================================================


def make_step(
    step_id: str,
    scope: StepScope = StepScope.SHARED,
    beneficiary: BeneficiaryType | None = None,
    order_index: int = 0,
    title_en: str = "",
    title_ar: str = "",
) -> Step:
    return Step(
        id=step_id,
        scope=scope,
        beneficiary_type=beneficiary,
        title=BilingualText(ar=title_ar or f"{step_id}-ar", en=title_en or f"{step_id}-en"),
        body=BilingualText(ar=f"body {step_id} ar", en=f"body {step_id} en"),
        order_index=order_index,
    )


@pytest.fixture
def sample_document() -> ManualDocument:
    """Manual with two shared steps and two BUSINESS steps.

    Steps are stored out of display order to exercise sorting.
    """
    return ManualDocument(
        title=BilingualText(ar="دليل الخدمة", en="Service Manual"),
        overview=BilingualText(ar="نظرة", en="Overview text"),
        selected_beneficiaries=[BeneficiaryType.BUSINESS],
        steps=[
            make_step("B2", StepScope.BENEFICIARY, BeneficiaryType.BUSINESS, 1),
            make_step("S1", StepScope.SHARED, None, 0),
            make_step("B1", StepScope.BENEFICIARY, BeneficiaryType.BUSINESS, 0),
            make_step("S2", StepScope.SHARED, None, 1),
        ],
    )


@pytest.fixture
def complete_document(sample_document) -> ManualDocument:
    """sample_document with an image that has full alt text."""
    sample_document.steps[1].images.append(
        StepImage(
            id="img1",
            url="https://cdn.example.com/img1.png",
            alt=BilingualText(ar="صورة", en="Screenshot"),
        )
    )
    return sample_document
