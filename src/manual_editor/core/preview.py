"""Preview composer.

Projects a document into per-audience views in one language:
- no beneficiary selected -> EMPTY placeholder
- one -> SINGLE view
- several -> TABS, one view per beneficiary in selection order

Each audience view lists SHARED steps first, then that audience's own steps.
The two sections are never interleaved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable

from manual_editor.core.i18n import beneficiary_label, translate
from manual_editor.core.models import BeneficiaryType, Lang, ManualDocument, Step
from manual_editor.core.step_repository import StepRepository


class PreviewKind(Enum):
    EMPTY = auto()
    SINGLE = auto()
    TABS = auto()


@dataclass
class PreviewImage:
    url: str
    alt: str


@dataclass
class PreviewStep:
    """A step rendered in the preview language."""

    step_id: str
    number: int  # 1-based within its section
    title: str
    body: str
    images: list[PreviewImage] = field(default_factory=list)


@dataclass
class AudienceView:
    """Everything one beneficiary type sees."""

    beneficiary: BeneficiaryType
    label: str
    title: str
    overview: str
    shared_heading: str
    shared_steps: list[PreviewStep] = field(default_factory=list)
    beneficiary_steps: list[PreviewStep] = field(default_factory=list)

    @property
    def steps(self) -> list[PreviewStep]:
        """Shared steps followed by beneficiary steps."""
        return self.shared_steps + self.beneficiary_steps

    @property
    def is_empty(self) -> bool:
        return not self.shared_steps and not self.beneficiary_steps


@dataclass
class Preview:
    kind: PreviewKind
    lang: Lang
    views: list[AudienceView] = field(default_factory=list)
    placeholder: str | None = None


class PreviewComposer:
    """Builds Preview objects from a document."""

    def compose(
        self,
        document: ManualDocument,
        lang: Lang | str,
        beneficiaries: Iterable[BeneficiaryType] | None = None,
        ui_lang: Lang | str | None = None,
    ) -> Preview:
        """Compose the preview.

        Args:
            document: Document to project
            lang: Language of the content
            beneficiaries: Audiences to show; defaults to the document selection
            ui_lang: Language of labels and placeholder; defaults to ``lang``

        Returns:
            Preview with zero, one or several audience views
        """
        lang = Lang(lang)
        ui_lang = Lang(ui_lang) if ui_lang is not None else lang

        selected: list[BeneficiaryType] = []
        source = document.selected_beneficiaries if beneficiaries is None else beneficiaries
        for beneficiary in source:
            beneficiary = BeneficiaryType(beneficiary)
            if beneficiary not in selected:
                selected.append(beneficiary)

        if not selected:
            return Preview(
                kind=PreviewKind.EMPTY,
                lang=lang,
                placeholder=translate("select_beneficiary", ui_lang),
            )

        repository = StepRepository(document)
        shared = repository.shared_steps()
        views = [
            self._audience_view(
                document,
                beneficiary,
                shared,
                repository.beneficiary_steps(beneficiary),
                lang,
                ui_lang,
            )
            for beneficiary in selected
        ]
        kind = PreviewKind.SINGLE if len(views) == 1 else PreviewKind.TABS
        return Preview(kind=kind, lang=lang, views=views)

    def _audience_view(
        self,
        document: ManualDocument,
        beneficiary: BeneficiaryType,
        shared: list[Step],
        own: list[Step],
        lang: Lang,
        ui_lang: Lang,
    ) -> AudienceView:
        return AudienceView(
            beneficiary=beneficiary,
            label=beneficiary_label(beneficiary, ui_lang),
            title=document.title.get(lang) or translate("untitled_manual", lang),
            overview=document.overview.get(lang),
            shared_heading=translate("shared_steps", ui_lang),
            shared_steps=[
                self._render_step(step, number, lang)
                for number, step in enumerate(shared, start=1)
            ],
            beneficiary_steps=[
                self._render_step(step, number, lang)
                for number, step in enumerate(own, start=1)
            ],
        )

    @staticmethod
    def _render_step(step: Step, number: int, lang: Lang) -> PreviewStep:
        return PreviewStep(
            step_id=step.id,
            number=number,
            title=step.title.get(lang) or translate("untitled", lang),
            body=step.body.get(lang),
            images=[PreviewImage(url=img.url, alt=img.alt.get(lang)) for img in step.images],
        )


def compose_preview(
    document: ManualDocument,
    lang: Lang | str,
    beneficiaries: Iterable[BeneficiaryType] | None = None,
    ui_lang: Lang | str | None = None,
) -> Preview:
    """Convenience wrapper around PreviewComposer.compose."""
    return PreviewComposer().compose(document, lang, beneficiaries, ui_lang)
