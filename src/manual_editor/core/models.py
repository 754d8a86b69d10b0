"""Document model for bilingual service manuals.

A ManualDocument holds a flat, ordered list of steps. Steps are grouped
into partitions by (scope, beneficiary_type); ``order_index`` is only
meaningful inside a partition.

JSON form uses the camelCase keys of the manuals API.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from manual_editor.core.errors import StructuralInvariantViolation

MAX_STEP_IMAGES = 5


# =============================================================================
# ENUMS
# =============================================================================


class Lang(str, Enum):
    """Content languages."""

    AR = "ar"
    EN = "en"


class StepScope(str, Enum):
    """Audience scope of a step."""

    SHARED = "SHARED"
    BENEFICIARY = "BENEFICIARY"


class BeneficiaryType(str, Enum):
    """Beneficiary categories a manual can target."""

    INDIVIDUAL = "INDIVIDUAL"
    BUSINESS = "BUSINESS"
    GOVERNMENT_ENTITY = "GOVERNMENT_ENTITY"


class ManualStatus(str, Enum):
    """Publication status of a manual."""

    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    PUBLISHED = "PUBLISHED"


def generate_id() -> str:
    """Generate a unique id for steps and images."""
    return uuid.uuid4().hex


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class BilingualText:
    """Arabic / English text pair."""

    ar: str = ""
    en: str = ""

    def get(self, lang: Lang | str) -> str:
        """Text for the given language."""
        return self.ar if Lang(lang) is Lang.AR else self.en

    def is_complete(self) -> bool:
        """True when both languages have non-blank text."""
        return bool(self.ar.strip()) and bool(self.en.strip())


@dataclass
class StepImage:
    """An image attached to a step."""

    id: str
    url: str
    alt: BilingualText = field(default_factory=BilingualText)
    pending: bool = False  # binary not yet uploaded

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "url": self.url,
            "altTextAr": self.alt.ar,
            "altTextEn": self.alt.en,
            "pending": self.pending,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepImage:
        return cls(
            id=str(data["id"]),
            url=str(data["url"]),
            alt=BilingualText(
                ar=data.get("altTextAr") or "",
                en=data.get("altTextEn") or "",
            ),
            pending=bool(data.get("pending", False)),
        )


def check_scope(scope: StepScope, beneficiary_type: BeneficiaryType | None) -> None:
    """Reject scope/beneficiary combinations that break the partition invariant.

    Raises:
        StructuralInvariantViolation: BENEFICIARY without a type, or SHARED with one
    """
    if scope is StepScope.BENEFICIARY and beneficiary_type is None:
        raise StructuralInvariantViolation(
            "BENEFICIARY scope requires a beneficiary type"
        )
    if scope is StepScope.SHARED and beneficiary_type is not None:
        raise StructuralInvariantViolation(
            f"SHARED scope cannot carry beneficiary type {beneficiary_type.value}"
        )


@dataclass
class Step:
    """One instructional unit of a manual."""

    id: str
    scope: StepScope
    beneficiary_type: BeneficiaryType | None = None
    title: BilingualText = field(default_factory=BilingualText)
    body: BilingualText = field(default_factory=BilingualText)
    order_index: int = 0
    images: list[StepImage] = field(default_factory=list)

    def __post_init__(self):
        check_scope(self.scope, self.beneficiary_type)

    @property
    def partition_key(self) -> tuple[StepScope, BeneficiaryType | None]:
        """The (scope, beneficiary_type) pair this step belongs to."""
        return (self.scope, self.beneficiary_type)

    def find_image(self, image_id: str) -> StepImage | None:
        for image in self.images:
            if image.id == image_id:
                return image
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "scope": self.scope.value,
            "beneficiaryType": self.beneficiary_type.value if self.beneficiary_type else None,
            "titleAr": self.title.ar,
            "titleEn": self.title.en,
            "bodyAr": self.body.ar,
            "bodyEn": self.body.en,
            "orderIndex": self.order_index,
            "images": [img.to_dict() for img in self.images],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        """Build a step from its JSON form.

        Raises:
            KeyError / ValueError: missing or malformed fields
            StructuralInvariantViolation: scope and beneficiary type disagree
        """
        beneficiary = data.get("beneficiaryType")
        return cls(
            id=str(data["id"]),
            scope=StepScope(data["scope"]),
            beneficiary_type=BeneficiaryType(beneficiary) if beneficiary else None,
            title=BilingualText(ar=data.get("titleAr") or "", en=data.get("titleEn") or ""),
            body=BilingualText(ar=data.get("bodyAr") or "", en=data.get("bodyEn") or ""),
            order_index=int(data.get("orderIndex", 0)),
            images=[StepImage.from_dict(img) for img in data.get("images") or []],
        )


@dataclass
class ManualDocument:
    """An in-progress bilingual manual."""

    id: str | None = None
    title: BilingualText = field(default_factory=BilingualText)
    overview: BilingualText = field(default_factory=BilingualText)
    selected_beneficiaries: list[BeneficiaryType] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)
    status: ManualStatus = ManualStatus.DRAFT
    version: str = "1.0"

    @property
    def is_new(self) -> bool:
        """True until the document has been saved remotely."""
        return self.id is None

    def find_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "titleAr": self.title.ar,
            "titleEn": self.title.en,
            "overviewAr": self.overview.ar,
            "overviewEn": self.overview.en,
            "selectedBeneficiaries": [b.value for b in self.selected_beneficiaries],
            "steps": [s.to_dict() for s in self.steps],
            "status": self.status.value,
            "version": self.version,
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManualDocument:
        """Build a document from its JSON form.

        Duplicate beneficiary selections are collapsed, keeping first occurrence.
        """
        selected: list[BeneficiaryType] = []
        for value in data.get("selectedBeneficiaries") or []:
            beneficiary = BeneficiaryType(value)
            if beneficiary not in selected:
                selected.append(beneficiary)

        manual_id = data.get("id")
        return cls(
            id=str(manual_id) if manual_id else None,
            title=BilingualText(ar=data.get("titleAr") or "", en=data.get("titleEn") or ""),
            overview=BilingualText(
                ar=data.get("overviewAr") or "", en=data.get("overviewEn") or ""
            ),
            selected_beneficiaries=selected,
            steps=[Step.from_dict(s) for s in data.get("steps") or []],
            status=ManualStatus(data.get("status", ManualStatus.DRAFT.value)),
            version=str(data.get("version", "1.0")),
        )
