from content import html_to_text


def test_paragraphs_and_line_breaks():
    markup = "<p>one<br />two</p><p>three</p>"
    assert html_to_text(markup) == "one\ntwo\n\nthree"


def test_entities_are_unescaped():
    assert html_to_text("<p>Fish &amp; chips &lt;3</p>") == "Fish & chips <3"


def test_mastodon_link_spans_are_kept_whole():
    markup = (
        '<p>Read <a href="https://example.com/articles/long-path" rel="nofollow noopener">'
        '<span class="invisible">https://</span><span class="ellipsis">example.com/articles/</span>'
        '<span class="invisible">long-path</span></a></p>'
    )
    assert html_to_text(markup) == "Read https://example.com/articles/long-path"


def test_hashtags_and_mentions():
    markup = (
        '<p><span class="h-card"><a href="https://social.example/@friend" class="u-url mention">'
        '@<span>friend</span></a></span> hi <a href="https://social.example/tags/python" '
        'class="mention hashtag" rel="tag">#<span>python</span></a></p>'
    )
    assert html_to_text(markup) == "@friend hi #python"


def test_scripts_are_dropped_and_whitespace_collapsed():
    markup = "<p>a   b\n  c</p><script>alert(1)</script>"
    assert html_to_text(markup) == "a b c"


def test_plain_text_passes_through():
    assert html_to_text("just text") == "just text"
    assert html_to_text("") == ""


def test_separator_paragraph_survives():
    markup = "<p>Part one</p><p>====</p><p>Part two</p>"
    assert html_to_text(markup) == "Part one\n\n====\n\nPart two"


def test_unicode_is_nfc_normalized():
    assert html_to_text("<p>Café</p>") == "Café"
