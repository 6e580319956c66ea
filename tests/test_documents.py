"""Tests for note document encoding and decoding."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from notebuddy.documents import decode_document, decode_note, encode_note
from notebuddy.errors import DecodeFailure
from notebuddy.models import Note, normalize_title


def test_encode_layout(make_note: Callable[..., Note]) -> None:
    note = make_note(revision=3)
    document = encode_note(note)
    assert document == (
        "---\n"
        "id: 1718000000000\n"
        "title: Groceries\n"
        "userId: user-1\n"
        "createdAt: 2024-06-10T06:13:20.000Z\n"
        "updatedAt: 2024-06-10T06:13:20.000Z\n"
        "isFavorite: false\n"
        "revision: 3\n"
        "---\n"
        "\n"
        "<p>milk, eggs</p>"
    )


@pytest.mark.parametrize(
    "content",
    [
        "",
        "plain",
        "\nstarts with a newline",
        "ends with newlines\n\n",
        "---\nlooks like a header\n---\n",
        "title: not a header line",
    ],
)
def test_content_survives_round_trip(
    make_note: Callable[..., Note],
    content: str,
) -> None:
    note = make_note(
        content=content,
        updated_at=datetime(2024, 6, 10, 6, 15, 2, 120000, tzinfo=UTC),
        is_favorite=True,
        revision=7,
    )
    decoded = decode_note(encode_note(note))
    assert decoded is not None
    assert decoded.model_dump() == note.model_dump()


def test_title_with_colon_and_boolean_text(make_note: Callable[..., Note]) -> None:
    for title in ("12:30 standup", "true"):
        decoded = decode_note(encode_note(make_note(title=title)))
        assert decoded is not None
        assert decoded.title == title


def test_newlines_in_title_are_flattened(make_note: Callable[..., Note]) -> None:
    decoded = decode_note(encode_note(make_note(title="first\nsecond")))
    assert decoded is not None
    assert decoded.title == "first second"


def test_file_context_flag_only_written_when_set(
    make_note: Callable[..., Note],
) -> None:
    assert "hasFileContext" not in encode_note(make_note())
    document = encode_note(make_note(has_file_context=True))
    assert "hasFileContext: true" in document
    decoded = decode_note(document)
    assert decoded is not None
    assert decoded.has_file_context is True


def test_missing_frontmatter_is_rejected() -> None:
    with pytest.raises(DecodeFailure):
        decode_document("just some text")
    assert decode_note("just some text") is None


def test_unclosed_frontmatter_is_rejected() -> None:
    with pytest.raises(DecodeFailure):
        decode_document("---\nid: 1\ntitle: never closed\n")


def test_unknown_and_valueless_lines_are_ignored() -> None:
    document = (
        "---\n"
        "id: 42\n"
        "color: blue\n"
        "title:\n"
        "no separator here\n"
        "userId: user-1\n"
        "createdAt: 2024-06-10T06:13:20.000Z\n"
        "updatedAt: 2024-06-10T06:13:20.000Z\n"
        "---\n"
        "\n"
        "body"
    )
    note = decode_note(document)
    assert note is not None
    assert note.id == "42"
    assert note.title == "Untitled"
    assert note.is_favorite is False
    assert note.revision == 0
    assert note.content == "body"


def test_missing_dates_are_reported_as_defaulted() -> None:
    decoded = decode_document("---\nid: 1\nuserId: user-1\n---\n\nbody")
    assert decoded.defaulted == {"createdAt", "updatedAt"}
    assert abs(decoded.note.updated_at - datetime.now(UTC)) < timedelta(seconds=5)


def test_unparseable_date_falls_back_to_now(caplog: pytest.LogCaptureFixture) -> None:
    document = (
        "---\n"
        "id: 1\n"
        "userId: user-1\n"
        "createdAt: yesterday-ish\n"
        "updatedAt: 2024-06-10T06:13:20.000Z\n"
        "---\n"
        "\n"
        "body"
    )
    with caplog.at_level("WARNING", logger="notebuddy.documents"):
        decoded = decode_document(document)

    assert "createdAt" not in decoded.defaulted
    assert abs(decoded.note.created_at - datetime.now(UTC)) < timedelta(seconds=5)
    assert decoded.note.updated_at == datetime(2024, 6, 10, 6, 13, 20, tzinfo=UTC)
    assert "yesterday-ish" in caplog.text


def test_normalize_title() -> None:
    assert normalize_title("  Groceries ") == "Groceries"
    assert normalize_title("first\r\nsecond\n") == "first second"
    assert normalize_title(" \n ") == "Untitled"
    assert normalize_title(None) == "Untitled"
