from __future__ import annotations

from thumb_architect.assembly.headline import split_headline


def test_split_highlights_the_word_in_place():
    parts = split_headline("How I Learned X", "Learned")
    assert parts == ("How I ", "Learned", " X")


def test_missing_word_leaves_headline_unstyled():
    parts = split_headline("How I Learned X", "Forgot")
    assert parts.prefix == "How I Learned X"
    assert parts.highlight == ""
    assert parts.suffix == ""


def test_empty_word_leaves_headline_unstyled():
    assert split_headline("Code Faster Now", "") == ("Code Faster Now", "", "")


def test_only_first_occurrence_is_highlighted():
    parts = split_headline("Go Go Go", "Go")
    assert parts == ("", "Go", " Go Go")


def test_match_is_case_sensitive_substring():
    assert split_headline("learned LEARNED", "LEARNED") == ("learned ", "LEARNED", "")
    assert split_headline("Relearned it", "learned") == ("Re", "learned", " it")
