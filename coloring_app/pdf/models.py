from typing import Optional

from pydantic import Field, field_validator

from coloring_app.prompting.models import CamelModel


class PdfRequest(CamelModel):
    image_url: str = Field(..., min_length=1)
    file_name: Optional[str] = Field(None, max_length=100)
    title: Optional[str] = Field(None, max_length=100)

    @field_validator("image_url")
    @classmethod
    def image_url_scheme(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://", "data:")):
            raise ValueError("Must be a valid URL or data URI")
        return value

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None
