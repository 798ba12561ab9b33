"""Template Pydantic models — pure data, no I/O."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class TemplateMetadata(BaseModel):
    name: str = ''
    description: str = ''
    locale: str = ''
    key: str = ''  # file key (set by loader, not stored in YAML)


class SummaryTemplate(BaseModel):
    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    system_prompt: str = ''
    user_template: str = '{text}'

    @field_validator('user_template')
    @classmethod
    def _requires_text_field(cls, value: str) -> str:
        if '{text}' not in value:
            raise ValueError('user_template must contain a {text} placeholder')
        return value
