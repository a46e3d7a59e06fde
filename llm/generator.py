"""
Natural language to FormSchema.

The generator only knows how to ask; everything it gets back is treated as
untrusted and goes through clean_schema before anyone else sees it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from gforms.cleaner import clean_schema, extract_json
from gforms.errors import FormsError, LLMProviderError
from gforms.schema import FormSchema
from llm.client import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert Google Forms schema generator. Create form schemas that perfectly comply with Google Forms API structure and limitations.

CRITICAL: Respond ONLY with valid JSON. No explanations, markdown, or additional text.

Google Forms API Compliance Rules:
1. Field types must map to Google Forms supported types:
   - text/email/phone/url -> SHORT_ANSWER (with validation)
   - textarea -> PARAGRAPH
   - number -> SHORT_ANSWER (with number validation)
   - select -> DROP_DOWN
   - radio -> MULTIPLE_CHOICE
   - checkbox -> CHECKBOX
   - date -> DATE
   - time -> TIME
   - file -> FILE_UPLOAD

2. Google Forms limitations:
   - NO payment fields (payment not supported in Google Forms)
   - NO datetime-local fields (use separate date/time)
   - File uploads have size/type restrictions
   - Maximum 300 fields per form
   - Questions must have clear, concise titles

3. Validation rules for Google Forms:
   - Email: built-in email validation
   - Phone: regex pattern validation
   - Number: number validation with min/max
   - Text: length validation with min/max characters
   - URL: built-in URL validation

Required JSON Schema:
{
  "title": "string (required, max 300 chars)",
  "description": "string (required, max 4096 chars)",
  "language": "en|hi|gu|mr|ta|te|kn|ml|bn|pa",
  "fields": [
    {
      "id": "string (snake_case, unique)",
      "label": "string (required, max 300 chars)",
      "type": "text|email|phone|number|select|checkbox|radio|date|textarea|url|time|file",
      "required": true|false,
      "placeholder": "string|null (help text, max 300 chars)",
      "options": ["string"] | null (for select/radio/checkbox only),
      "description": "string|null (help text, max 300 chars)",
      "validation": {
        "pattern": "regex_string|null",
        "min": number|null (min value for numbers, min length for text),
        "max": number|null (max value for numbers, max length for text),
        "message": "string|null (custom error message)"
      } | null
    }
  ],
  "settings": {
    "collect_email": true|false,
    "allow_multiple_submissions": true|false,
    "confirmation_message": "string|null (max 1024 chars)",
    "payment": {
      "enabled": false (ALWAYS false for Google Forms)
    },
    "show_progress_bar": true|false,
    "redirect_url": "string|null (valid URL)",
    "notifications": {
      "enabled": true|false,
      "email": "string|null (valid email)",
      "subject": "string|null (max 200 chars)"
    }
  }
}

Best Practices:
- Use clear, specific field labels
- Add helpful descriptions for complex fields
- Set appropriate validation for data integrity
- Group related fields logically
- Include required fields based on form purpose
- Limit options lists to reasonable lengths (max 100 items)
- Use snake_case for field IDs
- Ensure field IDs are unique and descriptive

Field Type Guidelines:
- Contact info: Use email, phone with validation
- Dates: Use date type, not datetime-local
- Large text: Use textarea for comments/descriptions
- Choices: Use radio for single choice, checkbox for multiple
- Dropdowns: Use select for long option lists
- Files: Specify accepted file types in description
- Numbers: Set appropriate min/max ranges

NEVER include payment fields or payment-related functionality as Google Forms doesn't support payments."""


@dataclass
class GenerationPreferences:
    collect_email: Optional[bool] = None
    required_fields: Optional[List[str]] = None
    max_fields: Optional[int] = None


def build_user_prompt(
    prompt: str,
    language: str = "en",
    context: Optional[str] = None,
    preferences: Optional[GenerationPreferences] = None,
) -> str:
    lines = [
        f'Create a Google Forms compatible schema for: "{prompt}"',
        "",
        "Requirements:",
        "- Must be compatible with Google Forms API",
        "- No payment fields (Google Forms doesn't support payments)",
        "- Use appropriate Google Forms field types",
        "- Include proper validation rules",
        "- Set meaningful field labels and descriptions",
    ]
    if language and language != "en":
        lines.append(f"- Generate form in language: {language}")
    if context:
        lines.append(f"- Additional context: {context}")
    if preferences:
        if preferences.collect_email is not None:
            collect = str(preferences.collect_email).lower()
            lines.append(f"- Collect respondent email: {collect}")
        if preferences.required_fields:
            required = ", ".join(preferences.required_fields)
            lines.append(f"- Required fields: {required}")
        if preferences.max_fields:
            lines.append(f"- Maximum {preferences.max_fields} fields")
    lines.append("")
    lines.append(
        "Respond with valid JSON only, following the exact schema format specified."
    )
    return "\n".join(lines)


class FormSchemaGenerator:
    def __init__(self, client: LLMClient, system_prompt: str = SYSTEM_PROMPT):
        self.client = client
        self.system_prompt = system_prompt

    async def generate(
        self,
        prompt: str,
        language: str = "en",
        context: Optional[str] = None,
        preferences: Optional[GenerationPreferences] = None,
    ) -> FormSchema:
        """
        Ask the configured provider for a form and clean what comes back.

        Raises:
            ProviderConfigError: no provider is configured.
            LLMProviderError: the provider call failed.
            SchemaError: the response could not be cleaned into a schema.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must not be empty")

        user_prompt = build_user_prompt(prompt.strip(), language, context, preferences)
        logger.info(
            f"[generate_form_schema] Generating schema for prompt of "
            f"{len(prompt)} chars"
        )
        try:
            raw = await self.client.generate(user_prompt, self.system_prompt)
        except FormsError:
            raise
        except Exception as e:
            raise LLMProviderError(self.client.config.provider, str(e)) from e

        schema = clean_schema(extract_json(raw))
        logger.info(
            f"[generate_form_schema] Generated '{schema.title}' "
            f"with {len(schema.fields)} fields"
        )
        return schema
