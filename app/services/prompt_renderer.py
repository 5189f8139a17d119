"""Prompt and question-text rendering using Jinja2.

Generation prompts and the question bank's follow-up templates are Jinja2
templates. They are rendered with StrictUndefined so a missing variable fails
loudly instead of producing a half-filled prompt, and without autoescaping
since the output is plain text rather than HTML.
"""

from typing import Any, Dict, Optional

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateError

from app.logging_config import get_logger

logger = get_logger(__name__)


class PromptRenderError(Exception):
    """Raised when a prompt or question template cannot be rendered."""
    pass


GENERATE_QUESTIONS_PROMPT = """\
Generate exactly {{ count }} high-quality survey questions about "{{ topic }}".

{% if target_audience %}The survey is targeted at: {{ target_audience }}.{% else %}The survey is for a general audience.{% endif %}
{% if question_types %}Focus on these question types: {{ question_types | join(", ") }}.{% else %}Use a mix of question types including multiple choice, rating scales, and open-ended text questions.{% endif %}
{% if goal %}Survey goal: {{ goal }}.{% endif %}

Return ONLY a JSON array with this exact structure:
[
  {"text": "Question text", "type": "multiple_choice" | "rating" | "text" | "boolean", "options": ["option1", "option2"] or null}
]

- "multiple_choice": include 3-5 relevant options
- "rating": include exactly two options, the low and high end labels
- "text": set options to null
- "boolean": use for yes/no questions

Questions must be clear, neutral and relevant to the topic.
Return ONLY the JSON array, no additional text.
"""

DYNAMIC_QUESTIONS_PROMPT = """\
You are helping run an adaptive survey.

Survey goal: {{ goal }}
Respond in language: {{ target_language }}
The respondent is at question {{ current_question_index + 1 }} of at most {{ max_questions }}.

Previous answers:
{% for item in previous_answers %}- Q: {{ item.question_text }} ({{ item.question_type }})
  A: {{ item.answer_text }}
{% else %}- (no answers yet)
{% endfor %}
Generate exactly {{ count }} follow-up question{{ "s" if count != 1 else "" }} that dig deeper into
the answers above and move the survey closer to its goal. Do not repeat questions
that were already asked.

Return ONLY a JSON array:
[
  {"text": "Question text", "type": "multiple_choice" | "rating" | "text" | "boolean", "options": ["option1", "option2"] or null}
]
"""


class PromptRenderer:
    """Service for rendering Jinja2 prompt and question templates."""

    def __init__(self):
        """Initialize Jinja2 environment with strict settings."""
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, template_text: str, context: Dict[str, Any]) -> str:
        """Render template with context variables.

        Args:
            template_text: Template string with Jinja2 syntax
            context: Dictionary of variables for template

        Returns:
            Rendered text

        Raises:
            PromptRenderError: If template is invalid or variables are missing

        Example:
            >>> renderer = PromptRenderer()
            >>> renderer.render("Tell us more about {{ topic }}", {"topic": "onboarding"})
            'Tell us more about onboarding'
        """
        try:
            template = self.env.from_string(template_text)
            return template.render(context)
        except TemplateError as e:
            logger.error(f"Template rendering error: {e}")
            raise PromptRenderError(f"Failed to render template: {e}")

    def render_generation_prompt(self, context: Dict[str, Any]) -> str:
        return self.render(GENERATE_QUESTIONS_PROMPT, context)

    def render_dynamic_prompt(self, context: Dict[str, Any]) -> str:
        return self.render(DYNAMIC_QUESTIONS_PROMPT, context)


# Global singleton instance
_renderer_instance: Optional[PromptRenderer] = None


def get_prompt_renderer() -> PromptRenderer:
    """Get global PromptRenderer instance.

    Returns:
        Global PromptRenderer instance
    """
    global _renderer_instance
    if _renderer_instance is None:
        _renderer_instance = PromptRenderer()
    return _renderer_instance
