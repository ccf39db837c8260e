from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from coloring_app.prompting.classifier import THEMES

MAX_PROMPT_LENGTH = 500

Complexity = Literal["simple", "medium", "complex"]
AgeGroup = Literal["kids", "adults"]
LineThickness = Literal["thin", "medium", "thick"]
Border = Literal["with", "without"]


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON keys while keeping snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Customizations(CamelModel):
    complexity: Complexity = "medium"
    age_group: AgeGroup = "kids"
    line_thickness: LineThickness = "medium"
    border: Border = "with"
    theme: Optional[str] = None

    @field_validator("theme")
    @classmethod
    def check_theme(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        value = value.strip().lower()
        if value not in THEMES:
            raise ValueError(f"Theme must be one of: {', '.join(THEMES)}")
        return value


class GenerationRequest(CamelModel):
    prompt: str
    customizations: Customizations = Field(default_factory=Customizations)

    @field_validator("prompt")
    @classmethod
    def check_prompt(cls, value: str) -> str:
        value = " ".join(value.split())
        if not 1 <= len(value) <= MAX_PROMPT_LENGTH:
            raise ValueError(f"Prompt must be between 1 and {MAX_PROMPT_LENGTH} characters")
        return value


class RefinedPrompt(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    original_prompt: str
    refined_prompt: str
    category: str
    keywords: List[str] = []
    method: Literal["llm", "template"] = "llm"


class RefineMetadata(CamelModel):
    category: str
    complexity: Complexity
    age_group: AgeGroup
    keywords: List[str]
    method: str


class RefineResponse(CamelModel):
    success: bool = True
    original_prompt: str
    refined_prompt: str
    metadata: RefineMetadata
