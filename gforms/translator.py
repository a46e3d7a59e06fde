"""
Translate a cleaned FormSchema into Google Forms batchUpdate requests.

The translation is pure: same schema in, identical request list out. Fields
whose type Google Forms cannot host are skipped and reported, never guessed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from gforms.field_types import CHOICE_TYPE_TAGS, FieldType, map_type
from gforms.errors import FieldIncompatibility
from gforms.schema import (
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    FormField,
    FormSchema,
    FormSettings,
)

logger = logging.getLogger(__name__)

# File upload defaults: 10 files of up to 10 MB, any type
FILE_UPLOAD_MAX_FILES = 10
FILE_UPLOAD_MAX_FILE_SIZE = 10 * 1024 * 1024
FILE_UPLOAD_TYPES = ("ANY",)

VALID_CHOICE_TYPES = {"RADIO", "CHECKBOX", "DROP_DOWN"}

EMAIL_COLLECTION_TYPES = {True: "RESPONDER_INPUT", False: "DO_NOT_COLLECT"}
VALID_EMAIL_COLLECTION_TYPES = {"DO_NOT_COLLECT", "VERIFIED", "RESPONDER_INPUT"}

# Local settings the Forms API has no field for
LOCAL_ONLY_SETTINGS = (
    "confirmation_message",
    "redirect_url",
    "show_progress_bar",
    "randomize_fields",
)

QUESTION_KINDS = (
    "textQuestion",
    "choiceQuestion",
    "dateQuestion",
    "timeQuestion",
    "fileUploadQuestion",
)


# ============================================================================
# OPERATIONS
# ============================================================================


@dataclass(frozen=True)
class UpdateFormInfo:
    """updateFormInfo request: sets title and/or description."""

    info: Dict[str, str]
    update_mask: str

    def to_request(self) -> Dict[str, Any]:
        return {
            "updateFormInfo": {"info": dict(self.info), "updateMask": self.update_mask}
        }


@dataclass(frozen=True)
class CreateItem:
    """createItem request for one question at an explicit position."""

    title: str
    question: Dict[str, Any]
    index: int
    description: Optional[str] = None
    field_id: str = ""

    def to_request(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {"title": self.title}
        if self.description:
            item["description"] = self.description
        item["questionItem"] = {"question": self.question}
        return {"createItem": {"item": item, "location": {"index": self.index}}}


@dataclass(frozen=True)
class UpdateSettings:
    """updateSettings request: form-level settings such as email collection."""

    settings: Dict[str, Any]
    update_mask: str

    def to_request(self) -> Dict[str, Any]:
        return {
            "updateSettings": {
                "settings": dict(self.settings),
                "updateMask": self.update_mask,
            }
        }


BatchOperation = Union[UpdateFormInfo, CreateItem, UpdateSettings]


@dataclass
class Translation:
    operations: List[BatchOperation] = field(default_factory=list)
    skipped: List[FieldIncompatibility] = field(default_factory=list)

    @property
    def create_items(self) -> List[CreateItem]:
        return [op for op in self.operations if isinstance(op, CreateItem)]

    def to_requests(self) -> List[Dict[str, Any]]:
        return [op.to_request() for op in self.operations]


# ============================================================================
# QUESTION BUILDER FUNCTIONS
# ============================================================================


def _build_text_question(f: FormField) -> Dict[str, Any]:
    return {"required": f.required, "textQuestion": {"paragraph": False}}


def _build_paragraph_question(f: FormField) -> Dict[str, Any]:
    return {"required": f.required, "textQuestion": {"paragraph": True}}


def _build_choice_question(f: FormField) -> Dict[str, Any]:
    """Build a choice question; the options go out verbatim and in order."""
    return {
        "required": f.required,
        "choiceQuestion": {
            "type": CHOICE_TYPE_TAGS[f.type.value],
            "options": [{"value": option} for option in f.options or []],
        },
    }


def _build_date_question(f: FormField) -> Dict[str, Any]:
    return {
        "required": f.required,
        "dateQuestion": {"includeTime": False, "includeYear": True},
    }


def _build_time_question(f: FormField) -> Dict[str, Any]:
    return {"required": f.required, "timeQuestion": {"duration": False}}


def _build_file_upload_question(f: FormField) -> Dict[str, Any]:
    return {
        "required": f.required,
        "fileUploadQuestion": {
            "maxFiles": FILE_UPLOAD_MAX_FILES,
            "maxFileSize": str(FILE_UPLOAD_MAX_FILE_SIZE),
            "types": list(FILE_UPLOAD_TYPES),
        },
    }


QUESTION_TYPE_HANDLERS: Dict[str, Callable[[FormField], Dict[str, Any]]] = {
    FieldType.TEXT.value: _build_text_question,
    FieldType.EMAIL.value: _build_text_question,
    FieldType.PHONE.value: _build_text_question,
    FieldType.NUMBER.value: _build_text_question,
    FieldType.TEXTAREA.value: _build_paragraph_question,
    FieldType.SELECT.value: _build_choice_question,
    FieldType.RADIO.value: _build_choice_question,
    FieldType.CHECKBOX.value: _build_choice_question,
    FieldType.DATE.value: _build_date_question,
    FieldType.TIME.value: _build_time_question,
    FieldType.FILE.value: _build_file_upload_question,
}


# ============================================================================
# TRANSLATION
# ============================================================================


def _build_form_info_update(
    schema: FormSchema, include_title: bool
) -> Optional[UpdateFormInfo]:
    info: Dict[str, str] = {}
    if include_title and schema.title:
        info["title"] = schema.title
    if schema.description:
        info["description"] = schema.description
    if not info:
        return None
    return UpdateFormInfo(info=info, update_mask=",".join(info))


def translate(schema: FormSchema, include_title: bool = True) -> Translation:
    """
    Convert a cleaned schema into the ordered batchUpdate operation sequence.

    Args:
        schema: A schema produced by clean_schema (or an edit of one).
        include_title: Whether the form info update should carry the title.
            Submission sets the title at creation time and passes False.

    Returns:
        Translation: At most one UpdateFormInfo first, then one CreateItem per
        translatable field with contiguous location indices starting at 0,
        plus the list of fields that were skipped.
    """
    translation = Translation()

    info_update = _build_form_info_update(schema, include_title)
    if info_update is not None:
        translation.operations.append(info_update)

    next_index = 0
    for position, f in enumerate(schema.fields):
        handler = QUESTION_TYPE_HANDLERS.get(f.type.value) if map_type(f.type) else None
        if handler is None:
            logger.warning(
                f"[translate] Field type '{f.type.value}' is not supported by "
                f"Google Forms. Skipping field: {f.id}"
            )
            translation.skipped.append(
                FieldIncompatibility(
                    field_id=f.id,
                    field_type=f.type.value,
                    label=f.label,
                    index=position,
                )
            )
            continue

        translation.operations.append(
            CreateItem(
                title=f.label,
                description=f.description,
                question=handler(f),
                index=next_index,
                field_id=f.id,
            )
        )
        next_index += 1

    return translation


def _email_collection_update(collect_email: bool) -> UpdateSettings:
    return UpdateSettings(
        settings={"emailCollectionType": EMAIL_COLLECTION_TYPES[bool(collect_email)]},
        update_mask="emailCollectionType",
    )


def translate_settings(settings: FormSettings) -> List[UpdateSettings]:
    """
    Settings operations for a new form. New forms already collect no email,
    so nothing is emitted for default settings.
    """
    ignored = [name for name in LOCAL_ONLY_SETTINGS if getattr(settings, name)]
    if ignored:
        logger.info(
            f"[translate_settings] Not supported by the Forms API, kept locally: "
            f"{', '.join(ignored)}"
        )
    if settings.collect_email:
        return [_email_collection_update(True)]
    return []


def build_settings_requests(
    title: Optional[str] = None,
    description: Optional[str] = None,
    collect_email: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Requests that change an existing form's info and settings.

    Only the given values are sent; the update masks name exactly those.
    Title and description are stripped and truncated to the Forms limits.
    """
    operations: List[BatchOperation] = []
    info: Dict[str, str] = {}
    if title and title.strip():
        info["title"] = title.strip()[:MAX_TITLE_LENGTH]
    if description and description.strip():
        info["description"] = description.strip()[:MAX_DESCRIPTION_LENGTH]
    if info:
        operations.append(UpdateFormInfo(info=info, update_mask=",".join(info)))
    if collect_email is not None:
        operations.append(_email_collection_update(collect_email))
    return [op.to_request() for op in operations]


# ============================================================================
# PRE-SEND VALIDATION
# ============================================================================


def _validate_create_item(request: Dict[str, Any], position: int) -> List[str]:
    errors = []
    create_item = request["createItem"] or {}
    item = create_item.get("item") or {}

    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append(f"Request {position}: Item title is required")

    question = (item.get("questionItem") or {}).get("question")
    if not isinstance(question, dict):
        errors.append(f"Request {position}: Question structure is required")
    else:
        kinds = [kind for kind in QUESTION_KINDS if question.get(kind) is not None]
        if len(kinds) != 1:
            errors.append(
                f"Request {position}: Question must have exactly one valid question type"
            )

        choice = question.get("choiceQuestion")
        if choice is not None:
            if choice.get("type") not in VALID_CHOICE_TYPES:
                errors.append(
                    f"Request {position}: Invalid choice question type "
                    f"'{choice.get('type')}'. "
                    f"Valid types: {', '.join(sorted(VALID_CHOICE_TYPES))}"
                )
            if not choice.get("options"):
                errors.append(f"Request {position}: Choice question must have options")

    location = create_item.get("location") or {}
    index = location.get("index")
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        errors.append(f"Request {position}: Valid location with index is required")
    return errors


def _validate_update_form_info(request: Dict[str, Any], position: int) -> List[str]:
    errors = []
    update = request["updateFormInfo"] or {}
    mask = update.get("updateMask")
    if not isinstance(mask, str) or not mask.strip():
        errors.append(f"Request {position}: updateMask is required for updateFormInfo")
    if not update.get("info"):
        errors.append(f"Request {position}: info object is required for updateFormInfo")
    return errors


def _validate_update_settings(request: Dict[str, Any], position: int) -> List[str]:
    errors = []
    update = request["updateSettings"] or {}
    mask = update.get("updateMask")
    if not isinstance(mask, str) or not mask.strip():
        errors.append(f"Request {position}: updateMask is required for updateSettings")
    settings = update.get("settings")
    if not isinstance(settings, dict) or not settings:
        errors.append(
            f"Request {position}: settings object is required for updateSettings"
        )
    else:
        email_collection = settings.get("emailCollectionType", "DO_NOT_COLLECT")
        if email_collection not in VALID_EMAIL_COLLECTION_TYPES:
            errors.append(
                f"Request {position}: Invalid emailCollectionType '{email_collection}'"
            )
    return errors


REQUEST_VALIDATORS = {
    "createItem": _validate_create_item,
    "updateFormInfo": _validate_update_form_info,
    "updateSettings": _validate_update_settings,
}


def validate_batch_requests(requests: List[Dict[str, Any]]) -> List[str]:
    """
    Check raw batchUpdate requests before they are sent.

    Returns:
        A list of human readable problems; empty when the batch looks sendable.
    """
    errors: List[str] = []
    for position, request in enumerate(requests):
        matched = False
        for key, validator in REQUEST_VALIDATORS.items():
            if isinstance(request, dict) and key in request:
                errors.extend(validator(request, position))
                matched = True
        if not matched:
            errors.append(f"Request {position}: Unknown request kind")
    return errors
