"""Tests for markdown to storage-format conversion."""

import pytest

from autodoc.clients.markup import to_markup
from autodoc.exceptions import ConversionError


class TestToMarkup:

    def test_headings_and_emphasis(self):
        out = to_markup("# Orders\n\n## Business Logic\n\nRejects **empty** carts.")
        assert "<h1>Orders</h1>" in out
        assert "<h2>Business Logic</h2>" in out
        assert "<strong>empty</strong>" in out

    def test_lists(self):
        out = to_markup("- `src/pricing.py`\n- `src/cart.py`")
        assert "<ul>" in out
        assert "<li><code>src/pricing.py</code></li>" in out

    def test_table(self):
        out = to_markup("| Commit | Change |\n|---|---|\n| 3f2a9c1 | Added conditional logic |")
        assert "<table>" in out
        assert "<th>Commit</th>" in out
        assert "<td>3f2a9c1</td>" in out

    def test_fenced_code_becomes_code_macro(self):
        out = to_markup("```python\nif a < b:\n    return a\n```")
        assert '<ac:structured-macro ac:name="code">' in out
        assert '<ac:parameter ac:name="language">python</ac:parameter>' in out
        assert "<![CDATA[if a < b:\n    return a]]>" in out
        assert "<pre>" not in out

    def test_code_without_language(self):
        out = to_markup("```\nplain\n```")
        assert "<![CDATA[plain]]>" in out
        assert "ac:parameter" not in out

    def test_cdata_terminator_escaped(self):
        out = to_markup("```\nx = a[b[0]]>1\n```")
        assert "]]]]><![CDATA[>" in out

    def test_links(self):
        out = to_markup("[repo](https://example.com/repo)")
        assert '<a href="https://example.com/repo">repo</a>' in out

    @pytest.mark.parametrize("text", ["", "   ", "\n\n"])
    def test_empty_input_rejected(self, text):
        with pytest.raises(ConversionError):
            to_markup(text)
