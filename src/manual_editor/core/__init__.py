"""Core editing engine for bilingual service manuals.

Modules:
- models: ManualDocument, Step, StepImage and enums
- errors: Error taxonomy
- i18n: Bilingual message catalog
- step_repository: Partitioned step collection (add/update/delete/move)
- image_validator: Candidate image checks
- document_validator: Save-time checks
- draft_persistence: Debounced draft autosave
- preview: Per-audience preview composition
- editor: Controller orchestrating the above
"""

__all__ = [
    "models",
    "errors",
    "i18n",
    "step_repository",
    "image_validator",
    "document_validator",
    "draft_persistence",
    "preview",
    "editor",
]
