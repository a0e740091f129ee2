import html
import re
from html.parser import HTMLParser


LINE_BREAK_PATTERN = re.compile(r"(?i)<\s*br\s*/?\s*>")
BLOCK_END_PATTERN = re.compile(r"(?i)</\s*(p|div|li|h[1-6]|blockquote|pre|tr|ul|ol|table)\s*>")
TAG_PATTERN = re.compile(r"<[^>]+>")
TEXT_ALIGN_PATTERN = re.compile(r"text-align\s*:\s*(left|right|center|justify)")
SAFE_LINK_PREFIXES = ("http://", "https://", "mailto:")


def html_to_plain_text(raw_html: str) -> str:
    """Strip markup from a note body, keeping block boundaries as single blank-collapsed lines."""
    if not raw_html:
        return ""
    text = LINE_BREAK_PATTERN.sub("\n", str(raw_html))
    text = BLOCK_END_PATTERN.sub("\n", text)
    text = html.unescape(TAG_PATTERN.sub("", text))
    text = text.replace("\r", "\n").replace("\xa0", " ")

    lines = []
    for line in text.split("\n"):
        line = " ".join(line.split())
        # at most one blank line in a row
        if not line and lines and not lines[-1]:
            continue
        lines.append(line)
    return "\n".join(lines).strip()


def build_preview(raw_html: str, max_chars=160) -> str:
    """Single-line plain-text excerpt of a note body."""
    text = " ".join(html_to_plain_text(raw_html).split())
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "..."


class _NoteHTMLSanitizer(HTMLParser):
    """Rebuilds editor HTML keeping only formatting tags, safe links and text alignment."""

    _allowed_tags = frozenset({
        "p", "br", "hr", "ul", "ol", "li", "strong", "b", "em", "i", "u", "s", "del",
        "blockquote", "pre", "code", "h1", "h2", "h3", "h4", "span", "a",
    })
    _void_tags = frozenset({"br", "hr"})
    _alignable_tags = frozenset({"p", "h1", "h2", "h3", "h4"})
    # Content of these is dropped along with the tag itself
    _dropped_content_tags = frozenset({"script", "style"})

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._parts = []
        self._skip_depth = 0

    def _link_attrs(self, attrs_dict):
        href = attrs_dict.get("href", "").strip()
        if not href.lower().startswith(SAFE_LINK_PREFIXES):
            return []
        return [
            f'href="{html.escape(href, quote=True)}"',
            'target="_blank"',
            'rel="noopener noreferrer"',
        ]

    def _align_attrs(self, attrs_dict):
        match = TEXT_ALIGN_PATTERN.search(attrs_dict.get("style", ""))
        return [f'style="text-align: {match.group(1)}"'] if match else []

    def handle_starttag(self, tag, attrs):
        tag = tag.lower()
        if tag in self._dropped_content_tags:
            self._skip_depth += 1
            return
        if tag not in self._allowed_tags:
            return
        attrs_dict = {name.lower(): (value or "") for name, value in attrs}
        clean_attrs = []
        if tag == "a":
            clean_attrs.extend(self._link_attrs(attrs_dict))
        if tag in self._alignable_tags:
            clean_attrs.extend(self._align_attrs(attrs_dict))
        self._parts.append("<" + " ".join([tag] + clean_attrs) + ">")

    def handle_endtag(self, tag):
        tag = tag.lower()
        if tag in self._dropped_content_tags:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in self._allowed_tags and tag not in self._void_tags:
            self._parts.append(f"</{tag}>")

    def handle_startendtag(self, tag, attrs):
        if tag.lower() not in self._dropped_content_tags:
            self.handle_starttag(tag, attrs)

    def handle_data(self, data):
        if data and not self._skip_depth:
            self._parts.append(html.escape(data, quote=False))

    def get_html(self) -> str:
        return "".join(self._parts).strip()


def sanitize_note_html(raw_html: str) -> str:
    sanitizer = _NoteHTMLSanitizer()
    sanitizer.feed(raw_html or "")
    sanitizer.close()
    return sanitizer.get_html()
