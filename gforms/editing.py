"""
Local field edits on a cleaned schema.

Each edit returns a new FormSchema; the input is never mutated. Edited fields
go through the same per-field cleaning as generator output, so every schema
invariant still holds afterwards. Existing field ids are never renamed by an
edit to a different field.
"""

import logging
from typing import Any, Dict, List, Optional

from gforms.cleaner import clean_field, clean_schema
from gforms.errors import SchemaError
from gforms.schema import MAX_FIELDS, FormSchema

logger = logging.getLogger(__name__)


def _field_dicts(schema: FormSchema) -> List[Dict[str, Any]]:
    return [f.model_dump(mode="json") for f in schema.fields]


def _rebuild(schema: FormSchema, fields: List[Dict[str, Any]]) -> FormSchema:
    payload = schema.model_dump(mode="json")
    payload["fields"] = fields
    return clean_schema(payload)


def _position_of(fields: List[Dict[str, Any]], field_id: str) -> int:
    for position, f in enumerate(fields):
        if f["id"] == field_id:
            return position
    raise SchemaError(
        "unknown_field", f"No field with id '{field_id}'", path=f"fields.{field_id}"
    )


def _unique_id(candidate: str, taken: List[str]) -> str:
    unique_id = candidate
    counter = 1
    while unique_id in taken:
        unique_id = f"{candidate}_{counter}"
        counter += 1
    return unique_id


def add_field(
    schema: FormSchema, raw_field: Dict[str, Any], position: Optional[int] = None
) -> FormSchema:
    """
    Insert a new field, appending when position is None.

    Raises:
        SchemaError: kind 'too_many_fields' when the form is already full.
    """
    fields = _field_dicts(schema)
    if len(fields) >= MAX_FIELDS:
        raise SchemaError(
            "too_many_fields",
            f"Form already has the maximum of {MAX_FIELDS} fields",
            path="fields",
        )

    if position is None or position > len(fields):
        position = len(fields)
    position = max(position, 0)

    new_field = clean_field(dict(raw_field), position)
    new_field["id"] = _unique_id(new_field["id"], [f["id"] for f in fields])
    fields.insert(position, new_field)
    logger.debug(f"[add_field] Added '{new_field['id']}' at position {position}")
    return _rebuild(schema, fields)


def remove_field(schema: FormSchema, field_id: str) -> FormSchema:
    """
    Remove a field by id.

    Raises:
        SchemaError: kind 'unknown_field', or 'no_fields' when removing the last one.
    """
    fields = _field_dicts(schema)
    del fields[_position_of(fields, field_id)]
    if not fields:
        raise SchemaError(
            "no_fields", "Form must have at least one field", path="fields"
        )
    return _rebuild(schema, fields)


def move_field(schema: FormSchema, field_id: str, new_position: int) -> FormSchema:
    """Move a field; positions past either end are clamped."""
    fields = _field_dicts(schema)
    moving = fields.pop(_position_of(fields, field_id))
    new_position = min(max(new_position, 0), len(fields))
    fields.insert(new_position, moving)
    return _rebuild(schema, fields)


def update_field(
    schema: FormSchema, field_id: str, changes: Dict[str, Any]
) -> FormSchema:
    """
    Apply changes to one field and re-clean it.

    Changing the type re-derives options and default validation, so a text
    field turned into a radio gets placeholder options and a radio turned
    into text loses them.
    """
    fields = _field_dicts(schema)
    position = _position_of(fields, field_id)

    merged = {**fields[position], **changes}
    if "type" in changes:
        if "options" not in changes:
            merged["options"] = fields[position].get("options")
        if "validation" not in changes:
            merged["validation"] = None

    updated = clean_field(merged, position)
    others = [f["id"] for i, f in enumerate(fields) if i != position]
    updated["id"] = _unique_id(updated["id"], others)
    fields[position] = updated
    return _rebuild(schema, fields)
