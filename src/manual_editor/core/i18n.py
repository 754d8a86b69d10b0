"""Bilingual message catalog for editor notifications and preview chrome."""

from __future__ import annotations

from manual_editor.core.models import BeneficiaryType, Lang

MESSAGES: dict[Lang, dict[str, str]] = {
    Lang.AR: {
        "draft_saved": "تم حفظ المسودة تلقائياً",
        "draft_loaded": "تم تحميل المسودة المحفوظة",
        "draft_discarded": "تم تجاهل المسودة",
        "saving": "جاري الحفظ...",
        "save_succeeded": "تم حفظ الدليل بنجاح",
        "save_failed": "حدث خطأ أثناء حفظ الدليل",
        "validation_failed": "يرجى تصحيح الأخطاء قبل الحفظ",
        "title_required": "العنوان مطلوب بكلا اللغتين",
        "step_title_required": "عنوان الخطوة مطلوب بكلا اللغتين",
        "alt_text_required": "النص البديل مطلوب لجميع الصور",
        "max_images": "الحد الأقصى {limit} صور",
        "invalid_file_type": "نوع الملف غير صالح. يرجى استخدام PNG أو JPG",
        "file_too_large": "حجم الملف كبير جدًا. الحد الأقصى 5 ميجابايت",
        "select_beneficiary": "الرجاء تحديد نوع مستفيد واحد على الأقل لمعاينة الدليل",
        "shared_steps": "الخطوات المشتركة",
        "no_steps": "لا توجد خطوات بعد",
        "overview": "نظرة عامة",
        "steps": "الخطوات",
        "step": "خطوة",
        "untitled": "بدون عنوان",
        "untitled_manual": "دليل بدون عنوان",
    },
    Lang.EN: {
        "draft_saved": "Draft auto-saved",
        "draft_loaded": "Draft loaded from auto-save",
        "draft_discarded": "Draft discarded",
        "saving": "Saving...",
        "save_succeeded": "Manual saved successfully",
        "save_failed": "Failed to save manual",
        "validation_failed": "Please fix the errors before saving",
        "title_required": "Title is required in both languages",
        "step_title_required": "Step title is required in both languages",
        "alt_text_required": "Alt text is required for all images",
        "max_images": "Maximum {limit} images",
        "invalid_file_type": "Invalid file type. Please use PNG or JPG",
        "file_too_large": "File is too large. Maximum 5MB",
        "select_beneficiary": "Please select at least one beneficiary type to preview the manual",
        "shared_steps": "Shared Steps",
        "no_steps": "No steps yet",
        "overview": "Overview",
        "steps": "Steps",
        "step": "Step",
        "untitled": "Untitled",
        "untitled_manual": "Untitled Manual",
    },
}

BENEFICIARY_LABELS: dict[Lang, dict[BeneficiaryType, str]] = {
    Lang.AR: {
        BeneficiaryType.INDIVIDUAL: "فرد",
        BeneficiaryType.BUSINESS: "منشأة",
        BeneficiaryType.GOVERNMENT_ENTITY: "جهة حكومية",
    },
    Lang.EN: {
        BeneficiaryType.INDIVIDUAL: "Individual",
        BeneficiaryType.BUSINESS: "Business",
        BeneficiaryType.GOVERNMENT_ENTITY: "Government Entity",
    },
}


def translate(key: str, lang: Lang | str, **params: object) -> str:
    """Look up a message, falling back to the key itself.

    Keyword arguments fill ``{placeholders}`` in the message.
    """
    message = MESSAGES[Lang(lang)].get(key, key)
    return message.format(**params) if params else message


def beneficiary_label(beneficiary: BeneficiaryType, lang: Lang | str) -> str:
    return BENEFICIARY_LABELS[Lang(lang)][beneficiary]
