"""Data URL and audio format helpers."""

import pytest

from backend.tailor.errors import ValidationError
from backend.tailor.utils.media import audio_filename, detect_audio_format, parse_data_url, to_data_url


def test_parse_data_url_extracts_mime_and_bytes():
    assert parse_data_url("data:image/png;base64,aGVsbG8=") == ("image/png", b"hello")


def test_parse_data_url_with_extra_params():
    mime, data = parse_data_url("data:audio/webm;codecs=opus;base64,aGVsbG8=")
    assert mime == "audio/webm" and data == b"hello"


def test_bare_base64_uses_default_mime():
    assert parse_data_url("aGVsbG8=") == ("image/jpeg", b"hello")


@pytest.mark.parametrize("value", ["", "   ", "data:image/png;base64,"])
def test_empty_image_rejected(value):
    with pytest.raises(ValidationError):
        parse_data_url(value)


def test_to_data_url_accepts_bytes_or_base64():
    assert to_data_url("image/png", b"hello") == "data:image/png;base64,aGVsbG8="
    assert to_data_url("image/png", "aGVsbG8=") == "data:image/png;base64,aGVsbG8="


def test_detect_audio_format_from_magic_bytes():
    assert detect_audio_format(b"RIFF\x00\x00\x00\x00WAVEfmt ") == ("audio/wav", ".wav")
    assert detect_audio_format(b"\x1a\x45\xdf\xa3" + b"\x00" * 12) == ("audio/webm", ".webm")
    assert detect_audio_format(b"OggS" + b"\x00" * 12) == ("audio/ogg", ".ogg")
    assert detect_audio_format(b"short") == ("audio/wav", ".wav")


def test_audio_filename_prefers_declared_type():
    assert audio_filename(b"whatever", "audio/webm;codecs=opus") == ("audio.webm", "audio/webm")
    assert audio_filename(b"OggS" + b"\x00" * 12, None) == ("audio.ogg", "audio/ogg")


@pytest.mark.parametrize("value", ["data:image/png;base64,ab!!cd??", "not base64 at all"])
def test_corrupt_base64_rejected(value):
    with pytest.raises(ValidationError, match="not valid base64"):
        parse_data_url(value)


def test_line_wrapped_base64_accepted():
    assert parse_data_url("data:image/png;base64,aGVs\nbG8=") == ("image/png", b"hello")
