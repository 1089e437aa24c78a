"""Markdown rendering engine wrapping patitas.

Applies to ``.md`` pages by default. The page content (after
front-matter is stripped, or whatever the page's render function
returned) is rendered to HTML.
"""

from typing import Any

from patitas import Markdown

from nadder.context import Context
from nadder.indexing.types import Renderer


class MarkdownRenderer:
    """Render Markdown source to HTML via patitas.

    Args:
        plugins: Patitas plugins to enable (default: all).
        highlight: Enable syntax highlighting for fenced code blocks.
    """

    __slots__ = ("_md",)

    def __init__(
        self,
        *,
        plugins: list[str] | None = None,
        highlight: bool = False,
    ) -> None:
        self._md = Markdown(plugins=plugins or ["all"], highlight=highlight)

    def render(self, source: str) -> str:
        if not source:
            return ""
        return self._md(source)

    def __call__(self, content: Any, ctx: Context) -> str:
        return self.render(str(content))


def markdown_renderer(
    *,
    name: str = "markdown",
    targets: tuple[str, ...] = (".md",),
    plugins: list[str] | None = None,
    highlight: bool = False,
) -> Renderer:
    """Build a ``Renderer`` capability for Markdown pages."""
    return Renderer(
        name=name,
        targets=targets,
        render=MarkdownRenderer(plugins=plugins, highlight=highlight),
    )
