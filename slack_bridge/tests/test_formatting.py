"""Tests for markdown to mrkdwn conversion and content stripping."""

import logging

import pytest

from slack_bridge.formatting import HORIZONTAL_RULE, strip_malicious, to_mrkdwn


class TestToMrkdwn:
    """Tests for the conversion rule table."""

    @pytest.mark.parametrize("source, expected", [
        ("# Title", "*Title*"),
        ("### Deep heading", "*Deep heading*"),
        ("## **Loud** title", "*Loud title*"),
        ("**bold** text", "*bold* text"),
        ("__bold__ text", "*bold* text"),
        ("***both***", "*_both_*"),
        ("~~gone~~", "~gone~"),
        ("_already italic_", "_already italic_"),
        ("*already bold*", "*already bold*"),
    ])
    def test_headings_and_emphasis(self, source, expected):
        assert to_mrkdwn(source) == expected

    def test_bullets(self):
        assert to_mrkdwn("- one\n* two\n+ three") == "• one\n• two\n• three"

    def test_nested_bullets_keep_indent(self):
        assert to_mrkdwn("- top\n  - nested") == "• top\n  • nested"

    def test_task_list(self):
        assert to_mrkdwn("- [x] done\n- [ ] todo") == "• ☑ done\n• ☐ todo"

    def test_link(self):
        assert to_mrkdwn("see [docs](https://example.com/docs)") == "see <https://example.com/docs|docs>"

    def test_image_before_link(self):
        assert to_mrkdwn("![logo](https://example.com/logo.png)") == "Image: <https://example.com/logo.png|logo>"

    def test_image_without_alt(self):
        assert to_mrkdwn("![](https://example.com/a.png)") == "Image: <https://example.com/a.png>"

    def test_code_fence_language_dropped(self):
        source = "```python\nx = **1**\n```"
        assert to_mrkdwn(source) == "```\nx = **1**\n```"

    def test_inline_code_untouched(self):
        assert to_mrkdwn("use `**raw**` here") == "use `**raw**` here"

    def test_bare_url_untouched(self):
        source = "docs at https://example.com/a__b__c"
        assert to_mrkdwn(source) == source

    def test_horizontal_rule(self):
        assert to_mrkdwn("above\n---\nbelow") == f"above\n{HORIZONTAL_RULE}\nbelow"
        assert to_mrkdwn("***") == HORIZONTAL_RULE

    def test_footnotes_removed(self):
        source = "Claim[^1].\n\n[^1]: Source here\n"
        assert to_mrkdwn(source) == "Claim.\n\n"

    def test_math_delimiters_removed(self):
        assert to_mrkdwn("$$E=mc^2$$ and $x$") == "E=mc^2 and x"

    def test_dollar_amounts_kept(self):
        assert to_mrkdwn("costs $5 and $10") == "costs $5 and $10"

    def test_existing_mrkdwn_link_kept(self):
        assert to_mrkdwn("<https://example.com|**x**>") == "<https://example.com|**x**>"

    def test_plain_text_unchanged(self):
        assert to_mrkdwn("hello there") == "hello there"

    @pytest.mark.parametrize("source", [
        "# Title\n**bold** *it* ~~s~~\n- item\n[a](https://a.com)\n---",
        "- [x] done\n![img](https://example.com/i.png)\n```js\nlet a = 1\n```",
        "***both*** and __under__ and `code` $x$",
    ])
    def test_stable_on_own_output(self, source):
        """Converting already-converted text changes nothing."""
        once = to_mrkdwn(source)
        assert to_mrkdwn(once) == once


class TestStripMalicious:
    """Tests for script and script-URI removal."""

    def test_script_tag(self):
        text, changed = strip_malicious("<script>alert(1)</script>hi")
        assert text == "[SCRIPT_REMOVED]hi"
        assert changed is True

    def test_multiline_script_tag(self):
        text, _ = strip_malicious("a<SCRIPT type='x'>\nevil()\n</script>b")
        assert text == "a[SCRIPT_REMOVED]b"

    def test_javascript_uri(self):
        text, _ = strip_malicious("click JavaScript:void(0)")
        assert text == "click [JAVASCRIPT_REMOVED]void(0)"

    def test_data_html_uri(self):
        text, _ = strip_malicious("data:text/html;base64,AAAA")
        assert text == "[DATA_URL_REMOVED];base64,AAAA"

    def test_clean_text(self):
        assert strip_malicious("all good") == ("all good", False)

    def test_replacement_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="slack_bridge.formatting"):
            strip_malicious("javascript:x")
        assert "malicious_content_sanitized" in caplog.text

    def test_clean_text_not_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="slack_bridge.formatting"):
            strip_malicious("fine")
        assert caplog.text == ""
