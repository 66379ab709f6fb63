"""HTML sanitization and XML escaping for feed output."""
from __future__ import annotations

import re

ALLOWED_TAGS = frozenset({"p", "br", "b", "i", "strong", "em", "ul", "ol", "li", "a"})

_STYLE_BLOCK = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_HTML_TAG = re.compile(r"</?([a-zA-Z0-9]+)[^>]*>")

_XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    "'": "&apos;",
    '"': "&quot;",
}
_XML_SPECIAL = re.compile(r"[<>&'\"]")
# C0 controls, lone surrogates and U+FFFE/U+FFFF are not allowed anywhere in XML 1.0
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def _keep_allowed(match: re.Match) -> str:
    if match.group(1).lower() in ALLOWED_TAGS:
        return match.group(0)
    return ""


def sanitize_description(html: str | None) -> str:
    """Strip ``<style>`` blocks and any tag outside ``ALLOWED_TAGS``.

    Only tag markup is removed; the text between tags always survives, so
    ``<script>x</script><p>ok</p>`` becomes ``x<p>ok</p>``.
    """
    if not html:
        return ""
    without_styles = _STYLE_BLOCK.sub("", html)
    return _HTML_TAG.sub(_keep_allowed, without_styles)


def escape_xml(value: str | None) -> str:
    """Escape the five XML special characters."""
    if not value:
        return ""
    cleaned = _INVALID_XML_CHARS.sub("", str(value))
    return _XML_SPECIAL.sub(lambda m: _XML_ESCAPES[m.group(0)], cleaned)


def cdata(text: str) -> str:
    """Wrap ``text`` in a CDATA section, splitting any embedded ``]]>``."""
    text = _INVALID_XML_CHARS.sub("", text)
    return "<![CDATA[ " + text.replace("]]>", "]]]]><![CDATA[>") + " ]]>"
