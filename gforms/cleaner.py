"""
Schema cleaning: turn untrusted generator output into a canonical FormSchema.

LLM output is noisy, so the cleaner is permissive where it can be (truncate,
fill defaults, fall back to text) and strict only where the result would be
meaningless (no object, no title, no fields).
"""

import copy
import json
import logging
import math
import re
import unicodedata
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError

from gforms.errors import SchemaError
from gforms.field_types import FieldType, is_choice_type, map_type
from gforms.schema import (
    DEFAULT_FORM_SCHEMA,
    MAX_CONFIRMATION_MESSAGE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_FIELD_DESCRIPTION_LENGTH,
    MAX_FIELDS,
    MAX_LABEL_LENGTH,
    MAX_NOTIFICATION_SUBJECT_LENGTH,
    MAX_OPTION_LENGTH,
    MAX_OPTIONS,
    MAX_PLACEHOLDER_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_VALIDATION_BOUND,
    MAX_VALIDATION_MESSAGE_LENGTH,
    MIN_VALIDATION_BOUND,
    FormField,
    FormSchema,
    Language,
)

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = ["Option 1", "Option 2", "Option 3"]
UNTITLED_FIELD_LABEL = "Untitled Field"

# Known-good validations synthesized when the generator sends none
DEFAULT_VALIDATIONS: Dict[str, Dict[str, Any]] = {
    FieldType.EMAIL.value: {
        "pattern": r"^[^\s@]+@[^\s@]+\.[^\s@]+$",
        "message": "Please enter a valid email address",
    },
    FieldType.PHONE.value: {
        "pattern": r"^[\+]?[1-9][\d]{0,15}$",
        "message": "Please enter a valid phone number",
    },
    FieldType.URL.value: {
        "pattern": r"^https?:\/\/[\w\-]+(\.[\w\-]+)+[/#?]?.*$",
        "message": "Please enter a valid URL",
    },
}

_TRUE_STRINGS = {"true", "yes", "y", "1", "on", "required"}
_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD_RE = re.compile(r"[\W_]+")


# ============================================================================
# TEXT HELPERS
# ============================================================================


def to_snake_case(value: str) -> str:
    """Convert a label such as 'First Name' or 'firstName' to 'first_name'."""
    value = unicodedata.normalize("NFKC", value)
    value = _CAMEL_BOUNDARY_RE.sub("_", value).lower()
    # lower() can emit combining marks (e.g. U+0130), so substitute after it
    value = _NON_WORD_RE.sub("_", value)
    return value.strip("_")


def _truncate(value: str, limit: int) -> str:
    return value[:limit] if len(value) > limit else value


def _optional_text(value: Any, limit: int) -> Optional[str]:
    """Coerce to a stripped, truncated string; empty becomes None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = _truncate(str(value).strip(), limit).rstrip()
    return text or None


def _coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def extract_json(raw: Any) -> Dict[str, Any]:
    """
    Pull a JSON object out of whatever an LLM provider returned.

    Dicts pass straight through. Strings may be bare JSON, JSON inside a
    markdown code fence, or JSON surrounded by prose.

    Raises:
        SchemaError: kind 'invalid_json' when no object can be recovered.
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raise SchemaError(
            "invalid_json",
            f"Expected JSON text from the generator, got {type(raw).__name__}",
        )

    candidates = [raw.strip()]
    candidates.extend(m.strip() for m in _FENCE_RE.findall(raw))
    start, end = raw.find("{"), raw.rfind("}")
    if start != -1 and end > start:
        candidates.append(raw[start : end + 1])

    for candidate in candidates:
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise SchemaError(
        "invalid_json", "No valid JSON object found in generator response"
    )


# ============================================================================
# FIELD CLEANING
# ============================================================================


def resolve_field_type(raw_type: Any) -> FieldType:
    """Resolve a requested type; anything Google Forms cannot host becomes text."""
    value = raw_type.value if isinstance(raw_type, FieldType) else raw_type
    if isinstance(value, str):
        value = value.strip().lower()
    if map_type(value) is None:
        if value not in (None, "", FieldType.TEXT.value):
            logger.debug(
                f"[clean_schema] Field type '{value}' has no Google Forms mapping; using text"
            )
        return FieldType.TEXT
    return FieldType(value)


def _requested_type(raw_type: Any) -> Optional[str]:
    value = raw_type.value if isinstance(raw_type, FieldType) else raw_type
    return value.strip().lower() if isinstance(value, str) else None


def _option_text(option: Any) -> Optional[str]:
    if isinstance(option, dict):
        option = option.get("value", option.get("label"))
    if option is None:
        return None
    text = _truncate(str(option), MAX_OPTION_LENGTH).strip()
    return text or None


def clean_options(field_type: FieldType, raw_options: Any) -> Optional[List[str]]:
    """Options exist only for choice fields; choice fields always get some."""
    if not is_choice_type(field_type):
        return None
    if not isinstance(raw_options, list) or not raw_options:
        return list(DEFAULT_OPTIONS)
    candidates = (_option_text(o) for o in raw_options[:MAX_OPTIONS])
    options = [text for text in candidates if text]
    return options or list(DEFAULT_OPTIONS)


def clean_validation(
    requested_type: Optional[str], raw_validation: Any
) -> Optional[Dict[str, Any]]:
    """Normalize numeric bounds, or synthesize a default for email/phone/url."""
    if not isinstance(raw_validation, dict):
        default = DEFAULT_VALIDATIONS.get(requested_type or "")
        return dict(default) if default else None

    validation: Dict[str, Any] = {
        "pattern": _optional_text(raw_validation.get("pattern"), 1000),
        "min": _coerce_number(raw_validation.get("min")),
        "max": _coerce_number(raw_validation.get("max")),
        "message": _optional_text(
            raw_validation.get("message"), MAX_VALIDATION_MESSAGE_LENGTH
        ),
    }
    if validation["min"] is not None and validation["min"] < MIN_VALIDATION_BOUND:
        validation["min"] = MIN_VALIDATION_BOUND
    if validation["max"] is not None and validation["max"] > MAX_VALIDATION_BOUND:
        validation["max"] = MAX_VALIDATION_BOUND
    return validation


def clean_field(raw_field: Dict[str, Any], index: int) -> Dict[str, Any]:
    """
    Clean one field dictionary. Ids are not de-duplicated here.

    Args:
        raw_field: Field as produced by the generator or a local edit.
        index: Zero-based position, used only to name fields with no label.

    Returns:
        A dictionary that validates as FormField.
    """
    label = _optional_text(
        raw_field.get("label") or raw_field.get("title"), MAX_LABEL_LENGTH
    )
    raw_id = raw_field.get("id")
    field_id = to_snake_case(str(raw_id)) if raw_id not in (None, "") else ""
    if not field_id:
        field_id = to_snake_case(label) if label else ""
    if not field_id:
        field_id = f"field_{index}"

    raw_type = raw_field.get("type")
    field_type = resolve_field_type(raw_type)

    return {
        "id": field_id,
        "label": label or UNTITLED_FIELD_LABEL,
        "type": field_type,
        "required": _coerce_bool(raw_field.get("required")),
        "placeholder": _optional_text(
            raw_field.get("placeholder"), MAX_PLACEHOLDER_LENGTH
        ),
        "options": clean_options(field_type, raw_field.get("options")),
        "description": _optional_text(
            raw_field.get("description"), MAX_FIELD_DESCRIPTION_LENGTH
        ),
        "validation": clean_validation(
            _requested_type(raw_type), raw_field.get("validation")
        ),
    }


def dedupe_field_ids(fields: List[Dict[str, Any]]) -> None:
    """Make ids unique in first-seen order by appending _1, _2, ..."""
    seen: Set[str] = set()
    for field in fields:
        base = field["id"]
        unique_id = base
        counter = 1
        while unique_id in seen:
            unique_id = f"{base}_{counter}"
            counter += 1
        if unique_id != base:
            logger.debug(
                f"[clean_schema] Renamed duplicate field id '{base}' to '{unique_id}'"
            )
        seen.add(unique_id)
        field["id"] = unique_id


def _field_entries(raw_fields: List[Any]) -> List[Dict[str, Any]]:
    entries = []
    for position, raw in enumerate(raw_fields):
        if isinstance(raw, FormField):
            entries.append(raw.model_dump(mode="json"))
        elif isinstance(raw, dict):
            entries.append(raw)
        elif isinstance(raw, str) and raw.strip():
            entries.append({"label": raw})
        else:
            logger.warning(
                f"[clean_schema] Dropping field at position {position}: not an object"
            )
    return entries


# ============================================================================
# SETTINGS CLEANING
# ============================================================================


def clean_settings(raw_settings: Any) -> Dict[str, Any]:
    defaults = copy.deepcopy(DEFAULT_FORM_SCHEMA["settings"])
    if not isinstance(raw_settings, dict):
        return defaults

    settings = {**defaults, **raw_settings}
    for flag in (
        "collect_email",
        "allow_multiple_submissions",
        "show_progress_bar",
        "randomize_fields",
    ):
        settings[flag] = _coerce_bool(settings.get(flag), defaults[flag])

    settings["confirmation_message"] = _optional_text(
        settings.get("confirmation_message"), MAX_CONFIRMATION_MESSAGE_LENGTH
    )
    settings["redirect_url"] = _optional_text(settings.get("redirect_url"), 2048)

    notifications = settings.get("notifications")
    if not isinstance(notifications, dict):
        notifications = {}
    notifications = {**defaults["notifications"], **notifications}
    notifications["enabled"] = _coerce_bool(notifications.get("enabled"))
    notifications["email"] = _optional_text(notifications.get("email"), 320)
    notifications["subject"] = _optional_text(
        notifications.get("subject"), MAX_NOTIFICATION_SUBJECT_LENGTH
    )
    settings["notifications"] = notifications

    payment = settings.get("payment")
    if isinstance(payment, dict) and _coerce_bool(payment.get("enabled")):
        logger.info(
            "[clean_schema] Payment requested but Google Forms has no payments; disabled"
        )
    settings["payment"] = {
        "enabled": False,
        "provider": None,
        "amount_field_id": None,
        "fixed_amount": None,
        "currency": None,
        "description": None,
    }
    return settings


# ============================================================================
# SCHEMA CLEANING
# ============================================================================


def clean_schema(candidate: Any) -> FormSchema:
    """
    Clean an untrusted candidate into a FormSchema satisfying every size and
    shape invariant.

    Args:
        candidate: Decoded JSON (dict), JSON text from a generator, or an
            existing FormSchema (cleaning is a fixed point after one pass).

    Returns:
        FormSchema: The canonical schema.

    Raises:
        SchemaError: When the candidate is not an object, has no title, or
            has no usable fields.
    """
    if isinstance(candidate, FormSchema):
        candidate = candidate.model_dump(mode="json")
    elif isinstance(candidate, (str, bytes, bytearray)):
        candidate = extract_json(candidate)

    if not isinstance(candidate, dict):
        raise SchemaError(
            "invalid_schema", "Invalid schema format: expected a JSON object"
        )

    merged: Dict[str, Any] = {**copy.deepcopy(DEFAULT_FORM_SCHEMA), **candidate}
    extra_keys = sorted(set(candidate) - set(DEFAULT_FORM_SCHEMA))
    if extra_keys:
        logger.debug(f"[clean_schema] Carrying unknown top-level keys: {extra_keys}")

    raw_title = merged.get("title")
    title = ""
    if isinstance(raw_title, (str, int, float)) and not isinstance(raw_title, bool):
        title = str(raw_title).strip()
    if not title:
        raise SchemaError("missing_title", "Form title is required", path="title")

    raw_description = merged.get("description")
    description = ""
    if raw_description is not None and not isinstance(raw_description, (dict, list)):
        description = str(raw_description).strip()

    raw_language = merged.get("language")
    language = Language.EN.value
    if isinstance(raw_language, str) and raw_language in Language._value2member_map_:
        language = raw_language

    raw_fields = merged.get("fields")
    if not isinstance(raw_fields, list):
        raise SchemaError(
            "invalid_fields", "Form must have at least one field", path="fields"
        )

    entries = _field_entries(raw_fields)
    if len(entries) > MAX_FIELDS:
        logger.warning(
            f"[clean_schema] Received {len(entries)} fields; keeping the first {MAX_FIELDS}"
        )
        entries = entries[:MAX_FIELDS]

    fields = [clean_field(entry, index) for index, entry in enumerate(entries)]
    if not fields:
        raise SchemaError(
            "no_fields", "Form must have at least one field", path="fields"
        )
    dedupe_field_ids(fields)

    cleaned = {
        **{key: merged[key] for key in extra_keys},
        "title": _truncate(title, MAX_TITLE_LENGTH).rstrip(),
        "description": _truncate(description, MAX_DESCRIPTION_LENGTH).rstrip(),
        "language": language,
        "fields": fields,
        "settings": clean_settings(merged.get("settings")),
    }

    try:
        return FormSchema.model_validate(cleaned)
    except ValidationError as e:
        # Only reachable if a bound above drifts from the model constraints.
        raise SchemaError(
            "invalid_schema", f"Cleaned schema failed validation: {e}"
        ) from e
