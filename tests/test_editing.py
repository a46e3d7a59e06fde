import pytest

from gforms.cleaner import DEFAULT_OPTIONS, clean_schema
from gforms.editing import add_field, move_field, remove_field, update_field
from gforms.errors import SchemaError
from gforms.field_types import FieldType


@pytest.fixture
def schema():
    return clean_schema(
        {
            "title": "Contact",
            "fields": [
                {"label": "Name"},
                {"label": "Email", "type": "email"},
                {"label": "Topic", "type": "select", "options": ["Sales", "Support"]},
            ],
        }
    )


def test_add_field_appends_with_unique_id(schema) -> None:
    edited = add_field(schema, {"label": "Name", "type": "textarea"})

    assert edited.field_ids() == ["name", "email", "topic", "name_1"]
    assert edited.fields[-1].type is FieldType.TEXTAREA
    assert schema.field_ids() == ["name", "email", "topic"]


def test_add_field_at_position(schema) -> None:
    edited = add_field(schema, {"label": "Phone", "type": "phone"}, position=1)

    assert edited.field_ids() == ["name", "phone", "email", "topic"]
    assert edited.get_field("phone").validation is not None


def test_add_field_refuses_past_the_cap() -> None:
    full = clean_schema(
        {"title": "Big", "fields": [{"label": f"Q{i}"} for i in range(300)]}
    )

    with pytest.raises(SchemaError) as exc_info:
        add_field(full, {"label": "One more"})

    assert exc_info.value.kind == "too_many_fields"


def test_remove_field(schema) -> None:
    edited = remove_field(schema, "email")

    assert edited.field_ids() == ["name", "topic"]


def test_remove_unknown_or_last_field() -> None:
    single = clean_schema({"title": "T", "fields": [{"label": "Only"}]})

    with pytest.raises(SchemaError) as unknown:
        remove_field(single, "missing")
    with pytest.raises(SchemaError) as last:
        remove_field(single, "only")

    assert unknown.value.kind == "unknown_field"
    assert last.value.kind == "no_fields"


def test_move_field_clamps_position(schema) -> None:
    assert move_field(schema, "topic", 0).field_ids() == ["topic", "name", "email"]
    assert move_field(schema, "name", 99).field_ids() == ["email", "topic", "name"]
    assert move_field(schema, "topic", -4).field_ids() == ["topic", "name", "email"]


def test_update_field_type_change_rederives_options(schema) -> None:
    to_radio = update_field(schema, "name", {"type": "radio"})
    assert to_radio.get_field("name").options == DEFAULT_OPTIONS

    to_text = update_field(schema, "topic", {"type": "text"})
    assert to_text.get_field("topic").options is None


def test_update_field_type_change_drops_stale_validation(schema) -> None:
    edited = update_field(schema, "email", {"type": "text"})

    assert edited.get_field("email").validation is None


def test_update_field_keeps_invariants(schema) -> None:
    edited = update_field(
        schema, "name", {"id": "email", "label": "L" * 500, "required": True}
    )

    assert len(set(edited.field_ids())) == 3
    assert edited.fields[0].id == "email_1"
    assert len(edited.fields[0].label) == 300
    assert edited.fields[0].required is True
