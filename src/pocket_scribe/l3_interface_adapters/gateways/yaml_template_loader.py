"""Gateway: YAML template loader — implements TemplateLoader port."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import yaml

from pocket_scribe.l1_entities.template import SummaryTemplate, TemplateMetadata
from pocket_scribe.l3_interface_adapters.gateways.paths import USER_TEMPLATES_DIR

_TEMPLATES_DIR = resources.files('pocket_scribe') / 'templates'


def builtin_names() -> set[str]:
    """Discover built-in template names from the templates directory."""
    return {p.name.removesuffix('.yaml') for p in _TEMPLATES_DIR.iterdir() if p.name.endswith('.yaml')}


def user_template_names() -> set[str]:
    """Discover user template names from the user templates directory."""
    if not USER_TEMPLATES_DIR.is_dir():
        return set()
    return {p.name.removesuffix('.yaml') for p in USER_TEMPLATES_DIR.iterdir() if p.name.endswith('.yaml')}


def all_template_names() -> set[str]:
    return builtin_names() | user_template_names()


class YamlTemplateLoader:
    """Loads SummaryTemplate from YAML files or built-in resources."""

    def load(self, template_ref: str) -> SummaryTemplate:
        # 1. Explicit file path
        path = Path(template_ref)
        if path.suffix in ('.yaml', '.yml') and path.is_file():
            return _parse(path.read_text(encoding='utf-8'), key=path.stem)
        # 2. User template (overrides built-in of the same name)
        if template_ref in user_template_names():
            return _load_user(template_ref)
        # 3. Built-in template
        if template_ref in builtin_names():
            return _load_builtin(template_ref)
        # 4. Match by display name (metadata.name) across all templates
        for tmpl in self._all():
            if tmpl.metadata.name == template_ref:
                return tmpl
        available_keys = sorted(all_template_names())
        raise FileNotFoundError(
            f"Template not found: '{template_ref}'. Available templates: {', '.join(available_keys)}"
        )

    def list_templates(self) -> list[TemplateMetadata]:
        return [tmpl.metadata for tmpl in sorted(self._all(), key=lambda t: t.metadata.key)]

    def _all(self) -> list[SummaryTemplate]:
        loaded: dict[str, SummaryTemplate] = {}
        # Built-ins first, then user overrides on top
        for name in builtin_names():
            loaded[name] = _load_builtin(name)
        for name in user_template_names():
            loaded[name] = _load_user(name)
        return list(loaded.values())


def _parse(text: str, key: str) -> SummaryTemplate:
    tmpl = SummaryTemplate.model_validate(yaml.safe_load(text) or {})
    tmpl.metadata.key = key
    return tmpl


def _load_builtin(name: str) -> SummaryTemplate:
    return _parse((_TEMPLATES_DIR / f'{name}.yaml').read_text(encoding='utf-8'), key=name)


def _load_user(name: str) -> SummaryTemplate:
    return _parse((USER_TEMPLATES_DIR / f'{name}.yaml').read_text(encoding='utf-8'), key=name)
