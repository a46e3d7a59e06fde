import json

from gforms.cleaner import clean_schema
from gforms.errors import FieldIncompatibility
from gforms.schema import FormSchema
from gforms.translator import (
    CreateItem,
    UpdateFormInfo,
    build_settings_requests,
    translate,
    translate_settings,
    validate_batch_requests,
)


def _schema() -> FormSchema:
    return clean_schema(
        {
            "title": "Workshop Registration",
            "description": "Sign up for a session",
            "fields": [
                {"label": "Name", "required": True},
                {"label": "Bio", "type": "textarea"},
                {
                    "label": "Session",
                    "type": "select",
                    "options": ["Morning", "Afternoon"],
                },
                {"label": "Diet", "type": "radio", "options": ["None", "Vegan"]},
                {"label": "Extras", "type": "checkbox", "options": ["Lunch"]},
                {"label": "Day", "type": "date"},
                {"label": "Arrival", "type": "time"},
                {"label": "Slides", "type": "file", "description": "PDF only"},
            ],
        }
    )


def test_form_info_update_comes_first() -> None:
    translation = translate(_schema())

    first = translation.operations[0]
    assert isinstance(first, UpdateFormInfo)
    assert first.info == {
        "title": "Workshop Registration",
        "description": "Sign up for a session",
    }
    assert first.update_mask == "title,description"


def test_title_can_be_left_out() -> None:
    translation = translate(_schema(), include_title=False)

    first = translation.operations[0]
    assert first.info == {"description": "Sign up for a session"}
    assert first.update_mask == "description"


def test_no_info_update_without_description_when_title_excluded() -> None:
    schema = clean_schema({"title": "T", "fields": [{"label": "A"}]})

    translation = translate(schema, include_title=False)

    assert all(isinstance(op, CreateItem) for op in translation.operations)


def test_create_item_indices_follow_field_order() -> None:
    items = translate(_schema()).create_items

    assert [item.index for item in items] == list(range(8))
    assert [item.title for item in items] == [
        "Name",
        "Bio",
        "Session",
        "Diet",
        "Extras",
        "Day",
        "Arrival",
        "Slides",
    ]


def test_question_shapes() -> None:
    requests = translate(_schema()).to_requests()
    questions = [
        r["createItem"]["item"]["questionItem"]["question"] for r in requests[1:]
    ]

    assert questions[0] == {"required": True, "textQuestion": {"paragraph": False}}
    assert questions[1]["textQuestion"] == {"paragraph": True}
    assert questions[2]["choiceQuestion"] == {
        "type": "DROP_DOWN",
        "options": [{"value": "Morning"}, {"value": "Afternoon"}],
    }
    assert questions[3]["choiceQuestion"]["type"] == "RADIO"
    assert questions[4]["choiceQuestion"]["type"] == "CHECKBOX"
    assert questions[5]["dateQuestion"] == {"includeTime": False, "includeYear": True}
    assert questions[6]["timeQuestion"] == {"duration": False}
    assert questions[7]["fileUploadQuestion"]["maxFiles"] == 10
    assert requests[8]["createItem"]["item"]["description"] == "PDF only"
    assert "description" not in requests[1]["createItem"]["item"]


def test_translation_is_pure() -> None:
    schema = _schema()
    before = schema.model_dump(mode="json")

    first = json.dumps(translate(schema).to_requests(), sort_keys=True)
    second = json.dumps(translate(schema).to_requests(), sort_keys=True)

    assert first == second
    assert schema.model_dump(mode="json") == before


def test_unmapped_field_is_skipped_alone() -> None:
    schema = FormSchema.model_validate(
        {
            "title": "T",
            "fields": [
                {"id": "name", "label": "Name", "type": "text"},
                {"id": "site", "label": "Website", "type": "url"},
                {"id": "age", "label": "Age", "type": "number"},
            ],
        }
    )

    translation = translate(schema, include_title=False)

    assert [item.field_id for item in translation.create_items] == ["name", "age"]
    assert [item.index for item in translation.create_items] == [0, 1]
    assert translation.skipped == [
        FieldIncompatibility(
            field_id="site", field_type="url", label="Website", index=1
        )
    ]


def test_translated_requests_pass_pre_send_checks() -> None:
    assert validate_batch_requests(translate(_schema()).to_requests()) == []


def test_pre_send_checks_catch_malformed_requests() -> None:
    bad = [
        {
            "createItem": {
                "item": {"title": "", "questionItem": {"question": {}}},
                "location": {},
            }
        },
        {
            "createItem": {
                "item": {
                    "title": "Q",
                    "questionItem": {
                        "question": {
                            "choiceQuestion": {"type": "SLIDER", "options": []}
                        }
                    },
                },
                "location": {"index": 0},
            }
        },
        {"updateFormInfo": {"info": {}, "updateMask": ""}},
        {"deleteItem": {"location": {"index": 0}}},
    ]

    problems = validate_batch_requests(bad)

    assert "Request 0: Item title is required" in problems
    assert "Request 0: Question must have exactly one valid question type" in problems
    assert "Request 0: Valid location with index is required" in problems
    assert any(
        p.startswith("Request 1: Invalid choice question type 'SLIDER'")
        for p in problems
    )
    assert "Request 1: Choice question must have options" in problems
    assert "Request 2: updateMask is required for updateFormInfo" in problems
    assert "Request 2: info object is required for updateFormInfo" in problems
    assert "Request 3: Unknown request kind" in problems


def test_email_collection_becomes_settings_update() -> None:
    schema = clean_schema(
        {
            "title": "T",
            "fields": [{"label": "Name"}],
            "settings": {"collect_email": True, "confirmation_message": "Thanks!"},
        }
    )

    operations = translate_settings(schema.settings)

    assert [op.to_request() for op in operations] == [
        {
            "updateSettings": {
                "settings": {"emailCollectionType": "RESPONDER_INPUT"},
                "updateMask": "emailCollectionType",
            }
        }
    ]
    assert translate_settings(_schema().settings) == []


def test_settings_requests_mask_only_given_values() -> None:
    requests = build_settings_requests(title="  New title  ", collect_email=False)

    assert requests == [
        {"updateFormInfo": {"info": {"title": "New title"}, "updateMask": "title"}},
        {
            "updateSettings": {
                "settings": {"emailCollectionType": "DO_NOT_COLLECT"},
                "updateMask": "emailCollectionType",
            }
        },
    ]
    assert build_settings_requests() == []
    long_title = build_settings_requests(title="t" * 400)[0]["updateFormInfo"]
    assert len(long_title["info"]["title"]) == 300
    assert validate_batch_requests(requests) == []


def test_pre_send_checks_cover_settings_updates() -> None:
    problems = validate_batch_requests(
        [
            {"updateSettings": {"settings": {}, "updateMask": ""}},
            {
                "updateSettings": {
                    "settings": {"emailCollectionType": "ALWAYS"},
                    "updateMask": "emailCollectionType",
                }
            },
        ]
    )

    assert "Request 0: updateMask is required for updateSettings" in problems
    assert "Request 0: settings object is required for updateSettings" in problems
    assert "Request 1: Invalid emailCollectionType 'ALWAYS'" in problems
