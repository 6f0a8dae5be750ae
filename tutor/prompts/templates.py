"""
Prompt Templates

Prompt text with {placeholder} fields. Rendering fails loudly when a field is
missing so a broken tutor prompt never reaches the completion service.
"""

from string import Formatter
from typing import Any, Optional

from tutor.exceptions import PromptTemplateError


def template_fields(text: str) -> set[str]:
    """Top-level placeholder names in text ("{a.b}" and "{a[0]}" count as "a")."""
    fields = set()
    for _, field_name, _, _ in Formatter().parse(text):
        if not field_name:
            continue
        root = field_name.split(".", 1)[0].split("[", 1)[0]
        if root:
            fields.add(root)
    return fields


class PromptTemplate:
    """Named prompt with {placeholder} fields and optional default values."""

    def __init__(
        self,
        template: str,
        name: Optional[str] = None,
        defaults: Optional[dict[str, Any]] = None,
    ):
        self.template = template.strip()
        self.name = name or "unnamed"
        self.defaults = dict(defaults or {})
        self.required_vars = template_fields(self.template)

    def render(self, **values: Any) -> str:
        """Fill every placeholder; values are inserted verbatim, braces included."""
        merged = {**self.defaults, **values}
        missing = sorted(self.required_vars.difference(merged))
        if missing:
            raise PromptTemplateError(template_name=self.name, missing_vars=missing)
        return self.template.format(**merged)

    def __repr__(self) -> str:
        return f"PromptTemplate(name='{self.name}', vars={sorted(self.required_vars)})"
