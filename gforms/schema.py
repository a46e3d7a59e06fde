"""
Canonical form schema models.

These are the strongly typed shapes every component past the cleaner works
with. Untrusted, loosely shaped JSON never reaches them directly: it goes
through gforms.cleaner.clean_schema first.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gforms.field_types import FieldType

# Size limits enforced by the cleaner
MAX_TITLE_LENGTH = 300
MAX_DESCRIPTION_LENGTH = 4096
MAX_FIELDS = 300
MAX_LABEL_LENGTH = 300
MAX_PLACEHOLDER_LENGTH = 300
MAX_FIELD_DESCRIPTION_LENGTH = 300
MAX_OPTIONS = 100
MAX_OPTION_LENGTH = 200
MAX_VALIDATION_MESSAGE_LENGTH = 300
MIN_VALIDATION_BOUND = 0
MAX_VALIDATION_BOUND = 10000
MAX_CONFIRMATION_MESSAGE_LENGTH = 1024
MAX_NOTIFICATION_SUBJECT_LENGTH = 200


class Language(str, Enum):
    EN = "en"
    HI = "hi"
    GU = "gu"
    MR = "mr"
    TA = "ta"
    TE = "te"
    KN = "kn"
    ML = "ml"
    BN = "bn"
    PA = "pa"


class FieldValidation(BaseModel):
    """Validation rules attached to a field."""

    model_config = ConfigDict(extra="ignore")

    pattern: Optional[str] = None
    min: Optional[float] = Field(default=None, ge=MIN_VALIDATION_BOUND)
    max: Optional[float] = Field(default=None, le=MAX_VALIDATION_BOUND)
    message: Optional[str] = Field(
        default=None, max_length=MAX_VALIDATION_MESSAGE_LENGTH
    )


class FormField(BaseModel):
    """One question of a form."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str = Field(min_length=1)
    label: str = Field(min_length=1, max_length=MAX_LABEL_LENGTH)
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = Field(default=None, max_length=MAX_PLACEHOLDER_LENGTH)
    options: Optional[List[str]] = Field(default=None, max_length=MAX_OPTIONS)
    description: Optional[str] = Field(
        default=None, max_length=MAX_FIELD_DESCRIPTION_LENGTH
    )
    validation: Optional[FieldValidation] = None


class PaymentSettings(BaseModel):
    """Payment block kept for shape compatibility; Google Forms has no payments."""

    enabled: bool = False
    provider: Optional[str] = None
    amount_field_id: Optional[str] = None
    fixed_amount: Optional[float] = None
    currency: Optional[str] = None
    description: Optional[str] = None

    @field_validator("enabled")
    @classmethod
    def _always_disabled(cls, value: bool) -> bool:
        return False


class NotificationSettings(BaseModel):
    enabled: bool = False
    email: Optional[str] = None
    subject: Optional[str] = Field(
        default=None, max_length=MAX_NOTIFICATION_SUBJECT_LENGTH
    )


class FormSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    collect_email: bool = False
    allow_multiple_submissions: bool = True
    confirmation_message: Optional[str] = Field(
        default=None, max_length=MAX_CONFIRMATION_MESSAGE_LENGTH
    )
    payment: PaymentSettings = Field(default_factory=PaymentSettings)
    show_progress_bar: bool = False
    randomize_fields: bool = False
    redirect_url: Optional[str] = None
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)


class FormSchema(BaseModel):
    """
    A cleaned form schema.

    Field order is the display order on the created form. Unknown top-level
    keys from the generator (theme and the like) are carried along untouched.
    """

    model_config = ConfigDict(extra="allow")

    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    language: Language = Language.EN
    fields: List[FormField] = Field(min_length=1, max_length=MAX_FIELDS)
    settings: FormSettings = Field(default_factory=FormSettings)

    def field_ids(self) -> List[str]:
        return [f.id for f in self.fields]

    def get_field(self, field_id: str) -> Optional[FormField]:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None


DEFAULT_FORM_SCHEMA: Dict[str, Any] = {
    "title": "",
    "description": "",
    "language": Language.EN.value,
    "fields": [],
    "settings": {
        "collect_email": False,
        "allow_multiple_submissions": True,
        "confirmation_message": None,
        "payment": {"enabled": False},
        "show_progress_bar": False,
        "randomize_fields": False,
        "redirect_url": None,
        "notifications": {"enabled": False, "email": None, "subject": None},
    },
}


class CreatedForm(BaseModel):
    """Record of a form that now exists on Google Forms."""

    form_id: str
    responder_uri: str
    edit_url: str
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    status: str = "published"
    skipped_fields: List[Dict[str, Any]] = Field(default_factory=list)


def edit_url_for(form_id: str) -> str:
    return f"https://docs.google.com/forms/d/{form_id}/edit"


def responder_url_for(form_id: str) -> str:
    return f"https://docs.google.com/forms/d/{form_id}/viewform"
