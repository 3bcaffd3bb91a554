from formatting import decode_html_entities, markdown_to_plain, split_message, to_chat_text, utf16_len


def test_checkbox_item_text_is_kept_verbatim():
    text = to_chat_text("Today:\n\n- [ ] call the printer guy\n- [x] ship v2\n")

    assert "[ ] call the printer guy" in text
    assert "[x] ship v2" in text
    assert "☐" not in text and "☑" not in text


def test_quote_entity_is_decoded():
    text = to_chat_text("He said &quot;ship it&quot; and it&#39;s done")

    assert text == "He said \"ship it\" and it's done"


def test_other_entities_are_left_alone():
    assert to_chat_text("Tom &amp; Jerry &lt;3") == "Tom &amp; Jerry &lt;3"


def test_formatting_markup_is_stripped():
    markdown = (
        "# Big news\n\n"
        "**Bold** and _italic_ with `code` and a [link](https://example.com).\n\n"
        "1. first\n"
        "2. second\n"
    )

    text = markdown_to_plain(markdown)

    assert text == (
        "Big news\n\n"
        "Bold and italic with code and a link.\n\n"
        "1. first\n"
        "2. second"
    )


def test_escaped_characters_resolve():
    assert markdown_to_plain(r"\*not bold\* #hashtag") == "*not bold* #hashtag"


def test_decode_html_entities_is_narrow():
    assert decode_html_entities("&quot;a&quot; &#39;b&#39; &amp;") == "\"a\" 'b' &amp;"


def test_split_message_short_text_untouched():
    assert split_message("hello") == ["hello"]


def test_split_message_breaks_on_newlines():
    text = "\n".join(["a" * 30] * 10)

    chunks = split_message(text, max_len=100)

    assert all(len(chunk) <= 100 for chunk in chunks)
    assert sum(chunk.count("a") for chunk in chunks) == 300


def test_split_message_counts_emoji_as_two_units():
    text = "🎉" * 3000

    chunks = split_message(text)

    assert len(chunks) == 2
    assert all(utf16_len(chunk) <= 4000 for chunk in chunks)
    assert "".join(chunks) == text


def test_split_message_prefers_newline_within_utf16_limit():
    text = "🚀" * 30 + "\n" + "b" * 50

    chunks = split_message(text, max_len=70)

    assert chunks == ["🚀" * 30, "b" * 50]
