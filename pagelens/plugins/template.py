"""Template capability: YAML front matter plus a Jinja2 body.

A template definition looks like::

    ---
    name: Compact
    description: Title and text only
    ---
    <h1>{{ title }}</h1>
    {% for p in paragraphs %}<p>{{ p }}</p>{% endfor %}
    <a href="{{ FULL_URL }}">source</a>

The body is compiled once, when the catalog is populated, in a sandboxed
environment. Template source fetched from the catalog host is never
evaluated as Python code.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import yaml
from jinja2 import Template, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pagelens.common.exceptions import DefinitionError

FRONT_MATTER_RE = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*(?:\r?\n|\Z)(?P<body>.*)\Z",
    re.DOTALL | re.MULTILINE,
)


class TemplateFrontMatter(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    description: str = ""


def mark_safe(value: Any) -> Markup:
    """Mark a value's text form safe, sequences included."""
    return Markup(str(value))


def create_environment() -> SandboxedEnvironment:
    """Build the shared environment every catalog template compiles in."""
    environment = SandboxedEnvironment(autoescape=True, keep_trailing_newline=True)
    environment.filters["safe"] = mark_safe
    return environment


def split_front_matter(
    text: str,
    link: str,
    parse_yaml: Callable[[str], Any] = yaml.safe_load,
) -> tuple[dict[str, Any], str]:
    """Split definition text into its front matter mapping and body.

    Raises:
        DefinitionError: If the front matter is missing or not a mapping.
    """
    match = FRONT_MATTER_RE.match(text)
    if match is None:
        raise DefinitionError(link, "missing front matter")
    try:
        meta = parse_yaml(match.group("meta"))
    except yaml.YAMLError as e:
        raise DefinitionError(link, f"invalid front matter: {e}") from e
    if not isinstance(meta, dict):
        raise DefinitionError(link, "front matter must be a mapping")
    return meta, match.group("body")


@dataclass(frozen=True)
class PageTemplate:
    """A named, precompiled template.

    Attributes:
        name: Template name from the front matter.
        description: Optional description from the front matter.
        link: Link of the definition source.
        local: True when loaded from a local catalog directory.
        compiled: The compiled Jinja2 template.
    """

    name: str
    description: str
    link: str
    local: bool
    compiled: Template

    @classmethod
    def from_text(
        cls,
        text: str,
        link: str,
        environment: SandboxedEnvironment,
        local: bool = False,
        parse_yaml: Callable[[str], Any] = yaml.safe_load,
    ) -> PageTemplate:
        """Compile a template definition.

        Raises:
            DefinitionError: If the front matter or the body is malformed.
        """
        meta, body = split_front_matter(text, link, parse_yaml)
        try:
            front_matter = TemplateFrontMatter.model_validate(meta)
        except ValidationError as e:
            raise DefinitionError(link, str(e)) from e

        try:
            compiled = environment.from_string(body)
        except TemplateError as e:
            raise DefinitionError(link, f"template syntax error: {e}") from e

        return cls(
            name=front_matter.name,
            description=front_matter.description,
            link=link,
            local=local,
            compiled=compiled,
        )

    def render(self, tokens: Mapping[str, Any]) -> str:
        return self.compiled.render(tokens)
