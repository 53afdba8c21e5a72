"""Tests for the template capability."""

import pytest
from jinja2.exceptions import SecurityError
from markupsafe import Markup

from pagelens.common.exceptions import DefinitionError
from pagelens.plugins.template import (
    PageTemplate,
    create_environment,
    split_front_matter,
)
from pagelens.render.values import Sequence
from tests.mock_server import COMPACT_TEMPLATE, NO_FRONT_MATTER_TEMPLATE

LINK = "https://github.com/BugCourt/MoyData/blob/master/MoyTemplates/compact.html"


@pytest.fixture
def environment():
    return create_environment()


class TestFrontMatter:
    """Tests for split_front_matter."""

    def test_split(self) -> None:
        """Front matter and body shall be separated."""
        meta, body = split_front_matter("---\nname: Compact\n---\n<p>hi</p>\n", LINK)

        assert meta == {"name": "Compact"}
        assert body == "<p>hi</p>\n"

    def test_crlf_line_endings(self) -> None:
        """Windows line endings shall be accepted."""
        meta, body = split_front_matter("---\r\nname: Compact\r\n---\r\nbody", LINK)

        assert meta == {"name": "Compact"}
        assert body == "body"

    @pytest.mark.parametrize(
        "text",
        [
            NO_FRONT_MATTER_TEMPLATE,
            "---\nname: Compact\n",
            "---\n- a\n- b\n---\nbody",
            "---\nname: [oops\n---\nbody",
        ],
    )
    def test_invalid_front_matter_raises(self, text: str) -> None:
        """Missing or malformed front matter shall raise DefinitionError."""
        with pytest.raises(DefinitionError):
            split_front_matter(text, LINK)


class TestPageTemplate:
    """Tests for compiling and rendering templates."""

    def test_compiles_once_with_metadata(self, environment) -> None:
        """A template shall expose its front matter and link."""
        template = PageTemplate.from_text(COMPACT_TEMPLATE, LINK, environment)

        assert template.name == "Compact"
        assert template.description == "Case name, parties and tags"
        assert template.link == LINK
        assert template.local is False

    def test_missing_name_raises(self, environment) -> None:
        """Front matter without a name shall raise DefinitionError."""
        with pytest.raises(DefinitionError):
            PageTemplate.from_text("---\ndescription: x\n---\nbody", LINK, environment)

    def test_syntax_error_raises(self, environment) -> None:
        """A body that does not compile shall raise DefinitionError."""
        with pytest.raises(DefinitionError, match="template syntax error"):
            PageTemplate.from_text(
                "---\nname: Broken\n---\n{% for x in %}", LINK, environment
            )

    def test_sequence_rendering(self, environment) -> None:
        """Sequences join with spaces, iterate in loops and index by position."""
        template = PageTemplate.from_text(
            "---\nname: T\n---\n"
            "{{ tags }}|{% for t in tags %}[{{ t }}]{% endfor %}|{{ tags[1] }}",
            LINK,
            environment,
        )

        output = template.render({"tags": Sequence(["a", "b", "c"])})

        assert output == "a b c|[a][b][c]|b"

    def test_values_are_escaped(self, environment) -> None:
        """Extracted text shall be HTML-escaped unless marked safe."""
        template = PageTemplate.from_text(
            "---\nname: T\n---\n{{ text }}|{{ text|safe }}", LINK, environment
        )

        output = template.render({"text": Sequence(["<b>x</b>"])})

        assert output == "&lt;b&gt;x&lt;/b&gt;|<b>x</b>"

    def test_sandbox_blocks_internal_attributes(self, environment) -> None:
        """Remote templates shall not reach Python internals."""
        template = PageTemplate.from_text(
            "---\nname: Evil\n---\n{{ tags.__class__.__mro__ }}", LINK, environment
        )

        with pytest.raises(SecurityError):
            template.render({"tags": Sequence(["a"])})

    def test_markup_values_are_not_escaped(self, environment) -> None:
        """Markup items keep their tags; plain items in the same sequence do not."""
        template = PageTemplate.from_text(
            "---\nname: T\n---\n{{ body }}|{% for b in body %}{{ b }};{% endfor %}",
            LINK,
            environment,
        )

        output = template.render({"body": Sequence([Markup("<i>ok</i>"), "<x>"])})

        assert output == "<i>ok</i> &lt;x&gt;|<i>ok</i>;&lt;x&gt;;"
