"""
Field type taxonomy for generated forms and its mapping onto Google Forms.

The abstract field types are what the schema generator speaks; the remote
question types are what the Forms API understands. Not every abstract type
has a remote counterpart.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class FieldType(str, Enum):
    """Abstract field types a form schema may use."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    TIME = "time"
    FILE = "file"
    TEXTAREA = "textarea"
    URL = "url"


# Remote question types (Google Forms UI taxonomy)
SHORT_ANSWER = "SHORT_ANSWER"
PARAGRAPH = "PARAGRAPH"
DROP_DOWN = "DROP_DOWN"
MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
CHECKBOX = "CHECKBOX"
DATE = "DATE"
TIME = "TIME"
FILE_UPLOAD = "FILE_UPLOAD"

GOOGLE_FORMS_MAPPINGS: Dict[str, str] = {
    FieldType.TEXT.value: SHORT_ANSWER,
    FieldType.TEXTAREA.value: PARAGRAPH,
    FieldType.EMAIL.value: SHORT_ANSWER,
    FieldType.PHONE.value: SHORT_ANSWER,
    FieldType.NUMBER.value: SHORT_ANSWER,
    FieldType.SELECT.value: DROP_DOWN,
    FieldType.CHECKBOX.value: CHECKBOX,
    FieldType.RADIO.value: MULTIPLE_CHOICE,
    FieldType.DATE.value: DATE,
    FieldType.TIME.value: TIME,
    FieldType.FILE.value: FILE_UPLOAD,
}

# choiceQuestion.type tag for each choice field type
CHOICE_TYPE_TAGS: Dict[str, str] = {
    FieldType.SELECT.value: "DROP_DOWN",
    FieldType.RADIO.value: "RADIO",
    FieldType.CHECKBOX.value: "CHECKBOX",
}

CHOICE_FIELD_TYPES: FrozenSet[str] = frozenset(CHOICE_TYPE_TAGS)


def _type_value(abstract_type) -> Optional[str]:
    if isinstance(abstract_type, FieldType):
        return abstract_type.value
    if isinstance(abstract_type, str):
        return abstract_type
    return None


def map_type(abstract_type) -> Optional[str]:
    """
    Map an abstract field type onto the Google Forms question type.

    Args:
        abstract_type: A FieldType member or its string value. Anything else
            (None, numbers, unknown strings) is treated as unsupported.

    Returns:
        The remote question type, or None when Google Forms has no equivalent.
    """
    value = _type_value(abstract_type)
    if value is None:
        return None
    return GOOGLE_FORMS_MAPPINGS.get(value)


def is_supported(abstract_type) -> bool:
    """True if the type can be created as a Google Forms question."""
    return map_type(abstract_type) is not None


def is_known_type(abstract_type) -> bool:
    """True if the value names one of the abstract field types."""
    value = _type_value(abstract_type)
    return value in FieldType._value2member_map_


def is_choice_type(abstract_type) -> bool:
    return _type_value(abstract_type) in CHOICE_FIELD_TYPES


def get_supported_field_types():
    """Abstract types that survive translation, in declaration order."""
    return [t.value for t in FieldType if t.value in GOOGLE_FORMS_MAPPINGS]
