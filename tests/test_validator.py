from gforms.cleaner import clean_schema
from gforms.validator import format_report, validate_schema

URL_ONLY = {"title": "T", "fields": [{"id": "u", "label": "U", "type": "url"}]}


def test_cleaned_schema_is_valid() -> None:
    cleaned = clean_schema(
        {
            "title": "Survey",
            "fields": [{"label": "Name"}, {"label": "Pick", "type": "radio"}],
        }
    )

    report = validate_schema(cleaned)

    assert report.valid
    assert report.errors == []
    assert report.summary.total_fields == 2
    assert report.summary.supported_fields == 2


def test_unsupported_type_and_duplicate_ids_are_errors() -> None:
    report = validate_schema(
        {
            "title": "T",
            "fields": [
                {"id": "site", "label": "Website", "type": "url"},
                {"id": "site", "label": "Name", "type": "text"},
            ],
        }
    )

    assert not report.valid
    assert any("'url' is not supported" in e for e in report.errors)
    assert "Form contains duplicate field IDs" in report.errors
    assert report.summary.unsupported_fields == 1
    assert report.summary.supported_fields == 1


def test_choice_field_problems() -> None:
    report = validate_schema(
        {
            "title": "T",
            "fields": [
                {"id": "a", "label": "A", "type": "select"},
                {"id": "b", "label": "B", "type": "radio", "options": []},
                {
                    "id": "c",
                    "label": "C",
                    "type": "checkbox",
                    "options": ["x", "x", "  "],
                },
            ],
        }
    )

    assert "Field 1 (A): Choice field must have options array" in report.errors
    assert "Field 2 (B): Choice field must have at least one option" in report.errors
    assert "Field 3 (C): Option 3 cannot be empty" in report.errors
    assert "Field 3 (C): Contains duplicate options" in report.warnings
    assert report.summary.fields_with_issues == 3


def test_warnings_do_not_invalidate() -> None:
    report = validate_schema(
        {
            "title": "T",
            "description": "d" * 5000,
            "fields": [
                {
                    "id": "mail",
                    "label": "Mail",
                    "type": "email",
                    "validation": {"pattern": ".+@.+"},
                },
                {"id": "cv", "label": "CV", "type": "file"},
            ],
        }
    )

    assert report.valid
    assert len(report.warnings) == 3


def test_missing_title_and_fields() -> None:
    report = validate_schema({"description": "no title"})

    assert not report.valid
    assert "Schema must have a valid title" in report.errors
    assert "Schema must have a fields array" in report.errors


def test_no_supported_fields() -> None:
    report = validate_schema(URL_ONLY)

    assert "Form contains no fields supported by Google Forms" in report.errors


def test_non_object_schema() -> None:
    report = validate_schema("just text")

    assert not report.valid
    assert report.errors == ["Schema must be a valid object"]


def test_validate_does_not_mutate_input() -> None:
    schema = {
        "title": "T" * 400,
        "fields": [{"id": "x", "label": "X", "type": "radio"}],
    }
    snapshot = repr(schema)

    validate_schema(schema)

    assert repr(schema) == snapshot


def test_format_report() -> None:
    report = validate_schema(URL_ONLY)

    text = format_report(report)

    assert "Status: INVALID" in text
    assert "ERRORS:" in text
    assert "Supported types: text" in text
