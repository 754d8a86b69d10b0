"""Form validation helpers for services.

Service code conventions:
- uppercase letters, digits and hyphen only
- 3 to 20 characters, e.g. "SRV-001"

Functions:
- validate_service_code(code) -> bool
- validate_service_form(code, name_ar, name_en) -> dict: field -> error code
"""

import re

SERVICE_CODE_PATTERN = re.compile(r"^[A-Z0-9-]{3,20}$")
MAX_SERVICE_NAME_LENGTH = 255


def validate_service_code(code: str) -> bool:
    """Check a service code against the code convention.

    Examples:
        "SRV-001" -> True
        "sr1" -> False (lowercase)
        "AB" -> False (too short)
    """
    return bool(SERVICE_CODE_PATTERN.match(code))


def _validate_name(value: str) -> str | None:
    if not value.strip():
        return "required"
    if len(value) > MAX_SERVICE_NAME_LENGTH:
        return "max_length"
    return None


def validate_service_form(code: str, name_ar: str, name_en: str) -> dict[str, str]:
    """Validate a create-service form.

    Args:
        code: Service code as typed
        name_ar: Arabic service name
        name_en: English service name

    Returns:
        Mapping of field name to error code ("required", "invalid",
        "max_length"); empty when the form is valid
    """
    errors: dict[str, str] = {}

    if not code.strip():
        errors["code"] = "required"
    elif not validate_service_code(code):
        errors["code"] = "invalid"

    if (error := _validate_name(name_ar)) is not None:
        errors["name_ar"] = error
    if (error := _validate_name(name_en)) is not None:
        errors["name_en"] = error

    return errors
