"""
Contract document templating.

Template bodies are HTML with two constructs:

    {{ path.to.value }}            replaced by the resolved value ('' when missing)
    {{#path}} ... {{/path}}        kept only when `path` resolves to a truthy value

Sections are matched non-greedily and do not nest. Values are inserted
without escaping: bodies are authored by the platform or the agency.
"""

import logging
import re
from typing import Any, Dict

from .default_templates import (  # noqa: F401  (re-exported)
    DEFAULT_TEMPLATE_DEFINITIONS,
    DEFAULT_TEMPLATES_BY_KEY,
    TemplateDefinition,
    get_default_definition,
)

logger = logging.getLogger(__name__)

SECTION_PATTERN = re.compile(r'\{\{#([^}]+)\}\}(.*?)\{\{/\1\}\}', re.DOTALL)
PLACEHOLDER_PATTERN = re.compile(r'\{\{\s*([^}\s]+)\s*\}\}')


def resolve_path(context: Dict[str, Any], path: str) -> Any:
    """
    Look up a dotted path through nested dicts.

    Returns '' when a segment is missing or the value is None.
    """
    value = context
    for segment in path.split('.'):
        if isinstance(value, dict) and segment in value:
            value = value[segment]
        else:
            return ''
    return '' if value is None else value


def render_template_body(body: str, context: Dict[str, Any]) -> str:
    """
    Render a template body against a nested context.

    Example:
        render_template_body('{{#a}}x{{/a}}{{ b.c }}', {'a': 1, 'b': {'c': 'y'}}) -> 'xy'
    """
    def _section(match):
        if resolve_path(context, match.group(1).strip()):
            return match.group(2)
        return ''

    def _placeholder(match):
        return str(resolve_path(context, match.group(1).strip()))

    rendered = SECTION_PATTERN.sub(_section, body or '')
    return PLACEHOLDER_PATTERN.sub(_placeholder, rendered)


def list_placeholders(body: str) -> list:
    """Distinct placeholder paths of a body, in order of appearance."""
    seen = []
    for path in PLACEHOLDER_PATTERN.findall(body or ''):
        if path.startswith(('#', '/')):
            path = path[1:]
        if path not in seen:
            seen.append(path)
    return seen
