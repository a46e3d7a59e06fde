"""OAuth scopes used by the form tools."""

FORMS_BODY_SCOPE = "https://www.googleapis.com/auth/forms.body"
FORMS_RESPONSES_READONLY_SCOPE = (
    "https://www.googleapis.com/auth/forms.responses.readonly"
)

# Needed by every tool that talks to Google Forms
BASE_SCOPES = [FORMS_BODY_SCOPE]

SCOPE_GROUPS = {
    "forms": [FORMS_BODY_SCOPE],
    "forms_responses": [FORMS_RESPONSES_READONLY_SCOPE],
}
