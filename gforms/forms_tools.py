"""
Google Forms MCP Tools

This module provides MCP tools that turn a natural language request into a
cleaned form schema and publish it as a Google Form.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from auth.scope_registry import register_tool_scopes
from auth.session import AuthState
from core.services import Services
from core.utils import handle_tool_errors
from gforms.cleaner import clean_schema
from gforms.client import format_responses
from gforms.schema import edit_url_for, responder_url_for
from gforms.translator import translate, translate_settings
from gforms.validator import format_report, validate_schema
from llm.generator import GenerationPreferences

logger = logging.getLogger(__name__)

FORMS_TOOL_SCOPES = ["forms", "forms_responses"]
register_tool_scopes(FORMS_TOOL_SCOPES)

SchemaInput = Union[Dict[str, Any], str]


# ============================================================================
# CONSTANTS AND CONFIGURATION
# ============================================================================

ITEM_TYPE_DETECTORS = {
    "videoItem": "VIDEO",
    "imageItem": "IMAGE",
    "pageBreakItem": "PAGE_BREAK",
    "textItem": "TEXT_ITEM",
    "questionGroupItem": "QUESTION_GROUP",
}

QUESTION_TYPE_DETECTORS = {
    "choiceQuestion": "CHOICE",
    "textQuestion": "TEXT",
    "scaleQuestion": "SCALE",
    "dateQuestion": "DATE",
    "timeQuestion": "TIME",
    "ratingQuestion": "RATING",
    "fileUploadQuestion": "FILE_UPLOAD",
}


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def _detect_item_type(item: Dict[str, Any]) -> str:
    if "questionItem" in item:
        question = item["questionItem"].get("question", {})
        for question_key, question_type in QUESTION_TYPE_DETECTORS.items():
            if question_key in question:
                if question_type == "CHOICE":
                    return question[question_key].get("type", question_type)
                return question_type
        return "QUESTION"
    for key, item_type in ITEM_TYPE_DETECTORS.items():
        if key in item:
            return item_type
    return "UNKNOWN"


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _skipped_lines(skipped: List[Dict[str, Any]]) -> str:
    return "\n".join(f"  - {s['message']}" for s in skipped)


# ============================================================================
# TOOLS
# ============================================================================


def register_forms_tools(server, services: Services) -> None:
    """Register the form tools on a FastMCP server, bound to the given services."""

    @server.tool()
    @handle_tool_errors("generate_form_schema")
    async def generate_form_schema(
        prompt: str,
        language: str = "en",
        context: Optional[str] = None,
        collect_email: Optional[bool] = None,
        required_fields: Optional[List[str]] = None,
        max_fields: Optional[int] = None,
    ) -> str:
        """
        Generate a Google Forms compatible schema from a natural language description.

        Args:
            prompt (str): What the form is for, e.g. "event signup with name, email and session choice".
            language (str): Form language code (en, hi, gu, mr, ta, te, kn, ml, bn, pa). Defaults to en.
            context (Optional[str]): Extra context for the generator.
            collect_email (Optional[bool]): Whether the form should collect respondent email.
            required_fields (Optional[List[str]]): Fields that must be present and required.
            max_fields (Optional[int]): Upper bound on the number of fields.

        Returns:
            str: The cleaned schema as JSON, ready for create_google_form.
        """
        logger.info(f"[generate_form_schema] Invoked. Language: {language}")
        preferences = GenerationPreferences(
            collect_email=collect_email,
            required_fields=required_fields,
            max_fields=max_fields,
        )
        schema = await services.generator.generate(
            prompt, language=language, context=context, preferences=preferences
        )
        return _dump(schema.model_dump(mode="json"))

    @server.tool()
    @handle_tool_errors("clean_form_schema")
    async def clean_form_schema(schema: SchemaInput) -> str:
        """
        Clean a form schema so it satisfies every Google Forms limit.

        Long text is truncated, unsupported types become text, choice fields get
        options, field ids are made unique and payment is disabled.

        Args:
            schema (Union[Dict, str]): The schema as an object or JSON text.

        Returns:
            str: The cleaned schema as JSON.
        """
        cleaned = clean_schema(schema)
        logger.info(
            f"[clean_form_schema] Cleaned '{cleaned.title}' ({len(cleaned.fields)} fields)"
        )
        return _dump(cleaned.model_dump(mode="json"))

    @server.tool()
    @handle_tool_errors("validate_form_schema")
    async def validate_form_schema(schema: SchemaInput) -> str:
        """
        Check a schema for Google Forms compatibility without changing it.

        Args:
            schema (Union[Dict, str]): The schema as an object or JSON text.

        Returns:
            str: Compatibility report with errors, warnings and field counts.
        """
        if isinstance(schema, str):
            try:
                schema = json.loads(schema)
            except json.JSONDecodeError as e:
                return f"Schema is not valid JSON: {e}"
        report = validate_schema(schema)
        logger.info(
            f"[validate_form_schema] valid={report.valid}, errors={len(report.errors)}"
        )
        return format_report(report)

    @server.tool()
    @handle_tool_errors("preview_form_requests")
    async def preview_form_requests(schema: SchemaInput) -> str:
        """
        Show the Forms API batchUpdate requests a schema would produce, without sending anything.

        Args:
            schema (Union[Dict, str]): The schema as an object or JSON text.

        Returns:
            str: JSON with the ordered requests and any skipped fields.
        """
        cleaned = clean_schema(schema)
        translation = translate(cleaned)
        requests = translation.to_requests()
        requests.extend(op.to_request() for op in translate_settings(cleaned.settings))
        return _dump(
            {
                "requests": requests,
                "skipped_fields": [s.to_dict() for s in translation.skipped],
            }
        )

    @server.tool()
    @handle_tool_errors("authenticate_google")
    async def authenticate_google() -> str:
        """
        Sign in to Google through the browser consent flow.

        Returns:
            str: The session state after the attempt.
        """
        session = services.session
        was_authenticated = session.state is AuthState.AUTHENTICATED
        await session.authenticate()
        if was_authenticated:
            return "Already authenticated with Google."
        return f"Authenticated with Google. Granted scopes: {', '.join(session.scopes)}"

    @server.tool()
    @handle_tool_errors("create_google_form")
    async def create_google_form(schema: SchemaInput) -> str:
        """
        Create a Google Form from a schema.

        The schema is cleaned first, so output of generate_form_schema or a
        hand-edited copy of it are both fine. Questions are sent in batches of
        at most 100. If a batch fails the form is left as is and the error
        says which batches made it.

        Args:
            schema (Union[Dict, str]): The schema as an object or JSON text.

        Returns:
            str: Confirmation message with form ID, edit URL and responder URL.
        """
        cleaned = clean_schema(schema)
        logger.info(
            f"[create_google_form] Invoked. Title: {cleaned.title}, "
            f"Fields: {len(cleaned.fields)}"
        )
        created = await services.submitter.submit_form(cleaned)

        message = (
            f"Successfully created form '{cleaned.title}'. Form ID: {created.form_id}. "
            f"Edit URL: {created.edit_url}. Responder URL: {created.responder_uri}"
        )
        if created.skipped_fields:
            message += (
                f"\nWARNING: {len(created.skipped_fields)} field(s) were skipped:\n"
                f"{_skipped_lines(created.skipped_fields)}"
            )
        return message

    @server.tool()
    @handle_tool_errors("get_google_form")
    async def get_google_form(form_id: str) -> str:
        """
        Get a form.

        Args:
            form_id (str): The ID of the form to retrieve.

        Returns:
            str: Form details including title, description, questions and URLs.
        """
        logger.info(f"[get_google_form] Invoked. Form ID: {form_id}")
        form = await services.forms_client.get_form(form_id)

        form_info = form.get("info", {})
        title = form_info.get("title", "No Title")
        description = form_info.get("description", "No Description")
        items = form.get("items", [])
        questions_details = [
            f"  {i}. [ID: {item.get('itemId', 'N/A')}] [{_detect_item_type(item)}] "
            f"{item.get('title', f'Question {i}')}"
            for i, item in enumerate(items, 1)
        ]
        questions_text = "\n".join(questions_details) or "  No questions found"

        return f"""Form Details:
- Title: "{title}"
- Description: "{description}"
- Form ID: {form_id}
- Edit URL: {edit_url_for(form_id)}
- Responder URL: {form.get("responderUri", responder_url_for(form_id))}
- Questions ({len(items)} total):
{questions_text}"""

    @server.tool()
    @handle_tool_errors("list_google_form_responses")
    async def list_google_form_responses(
        form_id: str,
        page_size: int = 10,
        page_token: Optional[str] = None,
    ) -> str:
        """
        List a form's responses.

        Args:
            form_id (str): The ID of the form.
            page_size (int): Maximum number of responses to return. Defaults to 10.
            page_token (Optional[str]): Token for retrieving next page of results.

        Returns:
            str: Responses with answers keyed by question ID, plus pagination info.
        """
        logger.info(f"[list_google_form_responses] Invoked. Form ID: {form_id}")
        result = await services.forms_client.list_responses(
            form_id, page_size=page_size, page_token=page_token
        )
        responses = format_responses(result.get("responses", []))
        if not responses:
            return f"No responses found for form {form_id}."

        payload: Dict[str, Any] = {"form_id": form_id, "responses": responses}
        if result.get("nextPageToken"):
            payload["next_page_token"] = result["nextPageToken"]
        return _dump(payload)

    @server.tool()
    @handle_tool_errors("update_google_form_settings")
    async def update_google_form_settings(
        form_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        collect_email: Optional[bool] = None,
    ) -> str:
        """
        Update an existing form's title, description or email collection.

        Args:
            form_id (str): The ID of the form to update.
            title (Optional[str]): New form title.
            description (Optional[str]): New form description.
            collect_email (Optional[bool]): Whether respondents must enter their email.

        Returns:
            str: Confirmation message with the form's current title and URLs.
        """
        logger.info(f"[update_google_form_settings] Invoked. Form ID: {form_id}")
        form = await services.forms_client.update_form_settings(
            form_id, title=title, description=description, collect_email=collect_email
        )
        settings = form.get("settings", {})
        email_collection = settings.get("emailCollectionType", "DO_NOT_COLLECT")
        return (
            f"Updated form '{form.get('info', {}).get('title', form_id)}'. "
            f"Email collection: {email_collection}. Edit URL: {edit_url_for(form_id)}"
        )

    @server.tool()
    @handle_tool_errors("get_google_form_analytics")
    async def get_google_form_analytics(form_id: str) -> str:
        """
        Summarize a form's responses: total count, first and last response time.

        Args:
            form_id (str): The ID of the form.

        Returns:
            str: JSON with the response summary.
        """
        logger.info(f"[get_google_form_analytics] Invoked. Form ID: {form_id}")
        return _dump(await services.forms_client.get_form_analytics(form_id))
