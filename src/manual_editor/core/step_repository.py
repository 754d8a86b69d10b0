"""Step repository.

Owns the flat, ordered step collection of one document and enforces the
scope/beneficiary partitioning. Partitions are derived on demand from
(scope, beneficiary_type); they are never stored.

Ordering rules:
- order_index is partition-relative; ties sort by insertion order
- delete leaves gaps, only relative order is guaranteed
- move swaps a step with its neighbour inside the same partition only
"""

from __future__ import annotations

from typing import Any, Literal

import structlog

from manual_editor.core.errors import (
    InvalidArgumentError,
    StepNotFoundError,
    StructuralInvariantViolation,
    TooManyImagesError,
)
from manual_editor.core.models import (
    MAX_STEP_IMAGES,
    BeneficiaryType,
    ManualDocument,
    Step,
    StepImage,
    StepScope,
    check_scope,
    generate_id,
)

logger = structlog.get_logger(__name__)

Direction = Literal["up", "down"]
PartitionKey = tuple[StepScope, BeneficiaryType | None]

TEXT_FIELDS = frozenset({"title_ar", "title_en", "body_ar", "body_en"})
MUTABLE_FIELDS = TEXT_FIELDS | {"images"}
IMMUTABLE_FIELDS = frozenset({"id", "scope", "beneficiary_type"})


def _partition_label(key: PartitionKey) -> str:
    scope, beneficiary = key
    return scope.value if beneficiary is None else f"{scope.value}:{beneficiary.value}"


class StepRepository:
    """Step operations over a single document's step list."""

    def __init__(self, document: ManualDocument, max_images: int = MAX_STEP_IMAGES):
        self._document = document
        self._max_images = max_images

    @property
    def steps(self) -> list[Step]:
        return self._document.steps

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, step_id: str) -> Step:
        """Return the step with the given id.

        Raises:
            StepNotFoundError: if no such step exists
        """
        step = self._document.find_step(step_id)
        if step is None:
            raise StepNotFoundError(step_id)
        return step

    def partition(
        self, scope: StepScope, beneficiary_type: BeneficiaryType | None
    ) -> list[Step]:
        """Members of one partition, in display order."""
        scope = StepScope(scope)
        if beneficiary_type is not None:
            beneficiary_type = BeneficiaryType(beneficiary_type)
        members = [
            (position, step)
            for position, step in enumerate(self.steps)
            if step.scope is scope and step.beneficiary_type is beneficiary_type
        ]
        members.sort(key=lambda item: (item[1].order_index, item[0]))
        return [step for _, step in members]

    def partitions(self) -> dict[PartitionKey, list[Step]]:
        """All non-empty partitions, each in display order."""
        keys: list[PartitionKey] = []
        for step in self.steps:
            if step.partition_key not in keys:
                keys.append(step.partition_key)
        return {key: self.partition(*key) for key in keys}

    def shared_steps(self) -> list[Step]:
        return self.partition(StepScope.SHARED, None)

    def beneficiary_steps(self, beneficiary_type: BeneficiaryType) -> list[Step]:
        return self.partition(StepScope.BENEFICIARY, beneficiary_type)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_step(
        self, scope: StepScope, beneficiary_type: BeneficiaryType | None = None
    ) -> Step:
        """Append an empty step at the end of its partition.

        Args:
            scope: SHARED or BENEFICIARY
            beneficiary_type: Required for BENEFICIARY, must be None for SHARED

        Returns:
            The new Step

        Raises:
            InvalidArgumentError: scope and beneficiary type disagree
        """
        scope = StepScope(scope)
        if beneficiary_type is not None:
            beneficiary_type = BeneficiaryType(beneficiary_type)
        check_scope(scope, beneficiary_type)

        members = self.partition(scope, beneficiary_type)
        order_index = len(members)
        if members and members[-1].order_index >= order_index:
            # Gaps left by deletes; keep the new step last.
            order_index = members[-1].order_index + 1

        step = Step(
            id=generate_id(),
            scope=scope,
            beneficiary_type=beneficiary_type,
            order_index=order_index,
        )
        self.steps.append(step)

        logger.info(
            "step_added",
            step_id=step.id,
            partition=_partition_label(step.partition_key),
            order_index=order_index,
        )
        return step

    def update_step(self, step_id: str, changes: dict[str, Any]) -> Step:
        """Merge title/body/image changes into a step.

        Args:
            step_id: Step to update
            changes: Any of title_ar, title_en, body_ar, body_en, images

        Returns:
            The updated Step

        Raises:
            StepNotFoundError: unknown step
            StructuralInvariantViolation: attempt to change id, scope or beneficiary_type
            InvalidArgumentError: unknown field, or non-string title/body text
            TooManyImagesError: image list longer than the limit
        """
        step = self.get(step_id)

        for key in IMMUTABLE_FIELDS & changes.keys():
            current = getattr(step, key)
            requested = changes[key]
            if key == "scope" and requested is not None:
                requested = StepScope(requested)
            if key == "beneficiary_type" and requested is not None:
                requested = BeneficiaryType(requested)
            if requested != current:
                raise StructuralInvariantViolation(
                    f"'{key}' of step '{step_id}' cannot be changed; delete and re-add instead"
                )

        unknown = set(changes) - MUTABLE_FIELDS - IMMUTABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Unknown step fields: {', '.join(sorted(unknown))}")

        for key in TEXT_FIELDS & changes.keys():
            if not isinstance(changes[key], str):
                raise InvalidArgumentError(
                    f"'{key}' must be a string, got {type(changes[key]).__name__}"
                )

        images: list[StepImage] | None = None
        if "images" in changes:
            images = list(changes["images"])
            if len(images) > self._max_images:
                raise TooManyImagesError(0, len(images), self._max_images)

        if "title_ar" in changes:
            step.title.ar = changes["title_ar"]
        if "title_en" in changes:
            step.title.en = changes["title_en"]
        if "body_ar" in changes:
            step.body.ar = changes["body_ar"]
        if "body_en" in changes:
            step.body.en = changes["body_en"]
        if images is not None:
            step.images = images

        logger.debug("step_updated", step_id=step_id, fields=sorted(changes))
        return step

    def delete_step(self, step_id: str) -> Step:
        """Remove a step. Remaining order indexes are left as they are.

        Raises:
            StepNotFoundError: unknown step
        """
        step = self.get(step_id)
        self.steps.remove(step)
        logger.info(
            "step_deleted",
            step_id=step_id,
            partition=_partition_label(step.partition_key),
        )
        return step

    def move_step(self, step_id: str, direction: Direction) -> bool:
        """Swap a step with its neighbour in the same partition.

        Args:
            step_id: Step to move
            direction: "up" or "down"

        Returns:
            True if the step moved, False if it was already at the edge

        Raises:
            StepNotFoundError: unknown step
            InvalidArgumentError: bad direction
        """
        if direction not in ("up", "down"):
            raise InvalidArgumentError(f"Invalid direction '{direction}'")

        step = self.get(step_id)
        members = self.partition(*step.partition_key)
        position = members.index(step)
        target = position - 1 if direction == "up" else position + 1

        if target < 0 or target >= len(members):
            logger.debug("step_move_noop", step_id=step_id, direction=direction)
            return False

        members[position], members[target] = members[target], members[position]
        # Renumber only this partition so ties cannot hide the swap.
        for index, member in enumerate(members):
            member.order_index = index

        logger.info(
            "step_moved",
            step_id=step_id,
            direction=direction,
            partition=_partition_label(step.partition_key),
            order_index=step.order_index,
        )
        return True
