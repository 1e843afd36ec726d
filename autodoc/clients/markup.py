"""Markdown to Confluence storage-format conversion."""

import html
import logging
import re

import markdown

from autodoc.exceptions import ConversionError

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]

_CODE_BLOCK = re.compile(
    r'<pre><code(?: class="language-([\w+#.\-]+)")?>(.*?)</code></pre>',
    re.DOTALL,
)

_CODE_MACRO = (
    '<ac:structured-macro ac:name="code">'
    '{language}'
    '<ac:plain-text-body><![CDATA[{body}]]></ac:plain-text-body>'
    '</ac:structured-macro>'
)


def _code_macro(match: re.Match) -> str:
    language, escaped = match.group(1), match.group(2)
    body = html.unescape(escaped).rstrip("\n")
    # "]]>" cannot appear inside a CDATA section.
    body = body.replace("]]>", "]]]]><![CDATA[>")
    language_param = f'<ac:parameter ac:name="language">{language}</ac:parameter>' if language else ""
    return _CODE_MACRO.format(language=language_param, body=body)


def to_markup(text: str) -> str:
    """Convert markdown *text* to Confluence storage format (XHTML).

    Headings, emphasis, lists, tables, links and inline code map to their
    XHTML elements; fenced code blocks become ``code`` macros.

    Raises:
        ConversionError: if *text* is empty or whitespace.
    """
    if not text or not text.strip():
        raise ConversionError()

    rendered = markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS, output_format="xhtml")
    storage = _CODE_BLOCK.sub(_code_macro, rendered)
    logger.debug("Converted markdown to storage format", extra={"markdown_chars": len(text), "storage_chars": len(storage)})
    return storage
