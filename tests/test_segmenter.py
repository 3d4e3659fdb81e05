import random

import pytest

from segmenter import char_weight, segment, weighted_length


def test_separator_cut():
    assert segment("AAA====BBB", 280, "====") == ["AAA", "BBB"]


def test_plain_ascii_split_at_limit():
    content = "x" * 300
    parts = segment(content, 280, "====")
    assert [len(p) for p in parts] == [280, 20]


def test_short_content_single_segment():
    assert segment("hello world", 280, "====") == ["hello world"]


def test_empty_content():
    assert segment("", 280, "====") == []


def test_separator_never_emitted():
    assert segment("====", 280, "====") == []
    assert segment("A========B", 280, "====") == ["A", "B"]
    assert segment("====A====", 280, "====") == ["A"]


def test_separator_at_candidate_boundary_is_consumed():
    # 10-char window, separator starts right after it
    content = "a" * 10 + "====" + "bbb"
    assert segment(content, 10, "====") == ["a" * 10, "bbb"]


def test_separator_outside_window_is_not_a_cut():
    content = "a" * 12 + "====" + "b"
    parts = segment(content, 10, "====")
    assert parts[0] == "a" * 10
    assert parts[1] == "aa"
    assert parts[2] == "b"


def test_separator_straddling_window_edge_is_a_cut():
    content = "a" * 8 + "====" + "b"
    assert segment(content, 10, "====") == ["a" * 8, "b"]


def test_separator_straddling_default_limit_is_consumed():
    content = "a" * 278 + "====" + "b"
    assert segment(content, 280, "====") == ["a" * 278, "b"]


def test_separator_cut_trusts_author_length():
    content = ("あ" * 200) + "====" + "tail"
    parts = segment(content, 280, "====")
    assert parts == ["あ" * 200, "tail"]
    assert weighted_length(parts[0]) > 280


def test_weighted_cut_shrinks_for_wide_characters():
    content = "あ" * 200
    parts = segment(content, 280, "====")
    assert [len(p) for p in parts] == [140, 60]
    assert all(weighted_length(p) <= 280 for p in parts)


def test_custom_weigher():
    parts = segment("abcdef", 4, "|", weigh=lambda s: 2 * len(s))
    assert parts == ["ab", "cd", "ef"]


def test_single_heavy_character_still_progresses():
    assert segment("ああ", 1, "====") == ["あ", "あ"]


def test_invalid_arguments():
    with pytest.raises(ValueError):
        segment("abc", 0, "====")
    with pytest.raises(ValueError):
        segment("abc", 10, "")


def test_char_weights():
    assert char_weight("a") == 1
    assert char_weight("é") == 1
    assert char_weight("\u2014") == 1
    assert char_weight("漢") == 2
    assert char_weight("😀") == 2
    assert weighted_length("ab漢") == 4


def test_segments_respect_bound_and_reconstruct_content():
    rng = random.Random(1234)
    alphabet = "abc de漢字あ😀\n"
    separator = "|"
    for _ in range(300):
        pieces = [
            "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 60)))
            for _ in range(rng.randint(0, 6))
        ]
        content = separator.join(pieces)
        max_len = rng.randint(1, 40)

        parts = segment(content, max_len, separator)

        assert "".join(parts) == content.replace(separator, "")
        cursor = 0
        for part in parts:
            while content.startswith(separator, cursor):
                cursor += len(separator)
            assert content.startswith(part, cursor)
            cursor += len(part)
            cut_at_separator = content.startswith(separator, cursor)
            if not cut_at_separator:
                assert weighted_length(part) <= max_len or len(part) == 1
        assert content[cursor:].replace(separator, "") == ""
