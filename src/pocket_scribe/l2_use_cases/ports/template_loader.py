"""Port: summary prompt template loader."""

from __future__ import annotations

from typing import Protocol

from pocket_scribe.l1_entities.template import SummaryTemplate, TemplateMetadata


class TemplateLoader(Protocol):
    """Abstract template loader."""

    def load(self, template_ref: str) -> SummaryTemplate:
        """Load a template by name or path."""
        ...

    def list_templates(self) -> list[TemplateMetadata]:
        """List all available templates."""
        ...
