from text_helpers import build_preview, html_to_plain_text, sanitize_note_html


def test_html_to_plain_text_normalizes_line_breaks():
    raw = "<p>Hello</p><p>World</p>"
    assert html_to_plain_text(raw) == "Hello\nWorld"


def test_sanitize_note_html_drops_script_blocks():
    raw = '<p>Safe</p><script>alert(1)</script>'
    assert sanitize_note_html(raw) == '<p>Safe</p>'


def test_sanitize_note_html_keeps_safe_links_and_alignment():
    raw = '<p style="text-align: center; color: red">Hi <a href="https://example.com" onclick="x()">there</a></p>'
    assert sanitize_note_html(raw) == (
        '<p style="text-align: center">Hi '
        '<a href="https://example.com" target="_blank" rel="noopener noreferrer">there</a></p>'
    )


def test_sanitize_note_html_strips_javascript_urls():
    raw = '<a href="javascript:alert(1)">click</a>'
    assert sanitize_note_html(raw) == '<a>click</a>'


def test_build_preview_truncates_long_bodies():
    raw = "<p>" + "word " * 100 + "</p>"
    preview = build_preview(raw, max_chars=20)
    assert preview.endswith("...")
    assert len(preview) <= 23
