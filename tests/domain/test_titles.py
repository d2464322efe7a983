from __future__ import annotations

from marketsync.domain.titles import is_tax_reduced, parse_title, shorten_by_word


def test_dash_separated_name_with_detail_and_format() -> None:
    parsed = parse_title("Emperor - In the Nightside Eclipse [Digipak] (cd)")

    assert parsed.artist == "Emperor"
    assert parsed.title == "In the Nightside Eclipse"
    assert parsed.format == "CD"
    assert parsed.detail == "Digipak"
    assert parsed.listing_title() == "Emperor - In the Nightside Eclipse (Digipak CD)"


def test_colon_separated_name() -> None:
    parsed = parse_title("Bathory: Blood Fire Death (LP)")

    assert (parsed.artist, parsed.title, parsed.format) == ("Bathory", "Blood Fire Death", "LP")


def test_by_separated_name() -> None:
    parsed = parse_title("Lords of Chaos by Michael Moynihan (BOOK)")

    assert parsed.artist == "Michael Moynihan"
    assert parsed.title == "Lords of Chaos"
    assert is_tax_reduced(parsed)


def test_name_without_separator_uses_first_words_as_artist() -> None:
    parsed = parse_title("Mayhem Logo Patch (PATCH)")

    assert parsed.artist == "Mayhem Logo Patch"
    assert parsed.format == "PATCH"


def test_ignored_detail_marker_is_dropped() -> None:
    assert parse_title("Immortal - Pure Holocaust [485] (CD)").detail == ""


def test_listing_title_is_cut_at_word_boundary() -> None:
    long_name = "Artist - " + " ".join(["Extraordinarily"] * 8) + " (2LP)"

    title = parse_title(long_name).listing_title()

    assert len(title) <= 80
    assert title.endswith("Extraordinarily…")


def test_shorten_by_word_keeps_short_text() -> None:
    assert shorten_by_word("Burzum", 10) == "Burzum"
    assert shorten_by_word("one two three", 9) == "one two…"
