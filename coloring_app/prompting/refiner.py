"""
    Prompt refinement: turns a short user prompt into a detailed coloring page
    instruction tagged with a taxonomy category.

    OpenAIPromptRefiner asks a chat-completion model for the final wording.
    TemplatePromptRefiner builds it locally and is used when no OpenAI key is
    configured.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import openai

from coloring_app.exceptions import UpstreamUnavailableException
from coloring_app.prompting.classifier import classify, extract_keywords
from coloring_app.prompting.content_filter import ensure_family_friendly, is_family_friendly
from coloring_app.prompting.models import Customizations, RefinedPrompt
from coloring_app.providers.openai_client import translate_openai_error
from coloring_app.settings import settings

log = logging.getLogger(__name__)

BASE_QUALITY_PHRASES = [
    "black-and-white line art",
    "coloring book style",
    "clear outlines",
    "no shading",
    "white background",
    "high contrast",
    "printable quality",
    "300 DPI",
]

AGE_GROUP_PHRASES = {
    "kids": ["bold outlines", "large open areas to color", "friendly expressions", "family-friendly"],
    "adults": ["fine intricate details", "complex patterns", "sophisticated composition", "family-friendly"],
}

COMPLEXITY_PHRASES = {
    "simple": "simple shapes with few elements",
    "medium": "moderate detail with a clear focal subject",
    "complex": "rich detail with an elaborate background",
}

LINE_PHRASES = {
    "thin": "thin delicate lines",
    "medium": "medium weight lines",
    "thick": "thick bold lines",
}

CATEGORY_TEMPLATES = {
    "animals": "a charming {subject} with expressive eyes, natural textures and a habitat setting",
    "fantasy": "an enchanted {subject} with magical ornaments and a fairy-tale backdrop",
    "nature": "a beautiful {subject} with organic flowing lines and seasonal details",
    "mandalas": "a balanced {subject} with radial symmetry and layered geometric motifs",
    "vehicles": "a dynamic {subject} with clean mechanical details and motion lines",
    "food": "an appetizing {subject} with decorative garnishes on a serving plate",
    "holidays": "a festive {subject} with cheerful decorations and celebratory motifs",
    "sports": "an energetic {subject} with action lines and sports equipment",
    "space": "a cosmic {subject} with planets, stars and a starfield background",
    "other": "a {subject} with clear outline features and balanced composition",
}

SYSTEM_MESSAGE = (
    "You are an expert coloring book illustrator and prompt engineer. "
    "You write single-paragraph image prompts for family-friendly black-and-white coloring pages."
)


def quality_phrases(customizations: Customizations) -> List[str]:
    phrases = [
        COMPLEXITY_PHRASES[customizations.complexity],
        LINE_PHRASES[customizations.line_thickness],
        "with a decorative border" if customizations.border == "with" else "without a border",
    ]
    phrases.extend(AGE_GROUP_PHRASES[customizations.age_group])
    phrases.extend(BASE_QUALITY_PHRASES)
    return phrases


def template_prompt(prompt: str, category: str, customizations: Customizations) -> str:
    subject = prompt.strip().rstrip(".")
    for article in ("a ", "an ", "the "):
        if subject.lower().startswith(article):
            subject = subject[len(article):]
            break
    template = CATEGORY_TEMPLATES.get(category, CATEGORY_TEMPLATES["other"])
    return ", ".join([template.format(subject=subject)] + quality_phrases(customizations))


class PromptRefiner(ABC):
    """Classifies a prompt and produces its refined form."""

    method = "llm"

    def refine(self, prompt: str, customizations: Customizations) -> RefinedPrompt:
        # nothing leaves the process before the content filter passes
        ensure_family_friendly(prompt)
        category = classify(prompt, theme=customizations.theme)
        refined = self.compose(prompt, category, customizations)
        method = self.method
        if not is_family_friendly(refined):
            # model wording like "not scary" must not reject a clean prompt
            log.warning("Refined wording from %s tripped the content filter, using the template", method)
            refined, method = template_prompt(prompt, category, customizations), TemplatePromptRefiner.method
        log.info("Refined prompt via %s, category=%s length=%d", method, category, len(refined))
        return RefinedPrompt(
            original_prompt=prompt,
            refined_prompt=refined,
            category=category,
            keywords=extract_keywords(prompt),
            method=method,
        )

    @abstractmethod
    def compose(self, prompt: str, category: str, customizations: Customizations) -> str:
        """Returns the refined prompt text."""


class TemplatePromptRefiner(PromptRefiner):
    method = "template"

    def compose(self, prompt: str, category: str, customizations: Customizations) -> str:
        return template_prompt(prompt, category, customizations)


class OpenAIPromptRefiner(PromptRefiner):
    def __init__(self, client: openai.OpenAI, model: Optional[str] = None):
        self.client = client
        self.model = model or settings.openai_chat_model

    def build_instruction(self, prompt: str, category: str, customizations: Customizations) -> str:
        phrases = ", ".join(quality_phrases(customizations))
        return (
            "Transform this short idea into a rich, detailed prompt for a coloring book page.\n"
            f"IDEA: \"{prompt}\"\n"
            f"CATEGORY: {category}\n"
            f"AUDIENCE: {customizations.age_group}\n"
            f"COMPLEXITY: {customizations.complexity}\n"
            "Describe the subject's textures, pose, background and mood, then end the prompt with "
            f"these specifications: {phrases}.\n"
            "Reply with the prompt only, as one paragraph, without quotes."
        )

    def compose(self, prompt: str, category: str, customizations: Customizations) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": self.build_instruction(prompt, category, customizations)},
                ],
                max_tokens=300,
                temperature=0.4,
            )
        except openai.OpenAIError as e:
            log.error(f"Chat completion failed: {e}")
            raise translate_openai_error(e, "Prompt refinement")

        content = response.choices[0].message.content if response.choices else None
        refined = (content or "").strip().strip('"').strip()
        if not refined:
            raise UpstreamUnavailableException("Prompt refinement returned an empty completion")
        return refined
