"""Media helpers — data URL parsing/encoding and audio format sniffing."""

from __future__ import annotations

import base64
import binascii
import re

from backend.tailor.errors import ValidationError

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$", re.S)

_AUDIO_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/ogg": ".ogg",
    "audio/flac": ".flac",
    "audio/mp4": ".m4a",
    "audio/m4a": ".m4a",
    "audio/webm": ".webm",
    "audio/amr": ".amr",
}


def parse_data_url(value: str, default_mime: str = "image/jpeg") -> tuple[str, bytes]:
    """Split a `data:<mime>;base64,<payload>` URL into (mime, bytes).

    A bare base64 string is accepted and tagged with `default_mime`.

    Raises:
        ValidationError: If the payload is empty or not valid base64.
    """
    value = (value or "").strip()
    if not value:
        raise ValidationError("Image is required")

    match = _DATA_URL_RE.match(value)
    if match:
        mime = match.group("mime") or default_mime
        payload = match.group("data")
    else:
        mime, payload = default_mime, value

    # Tolerate line-wrapped base64; anything else outside the alphabet is rejected
    payload = "".join(payload.split())
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Image data is not valid base64") from e

    if not data:
        raise ValidationError("Image is required")
    return mime, data


def to_data_url(mime: str, data: bytes | str) -> str:
    """Encode bytes (or an already-base64 string) as a data URL."""
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode()
    return f"data:{mime};base64,{data}"


def detect_audio_format(audio: bytes) -> tuple[str, str]:
    """Detect audio format from magic bytes.

    Returns (mime_type, extension). Unknown input defaults to WAV.
    """
    if len(audio) < 12:
        return "audio/wav", ".wav"

    # WAV: RIFF....WAVE
    if audio[:4] == b"RIFF" and audio[8:12] == b"WAVE":
        return "audio/wav", ".wav"
    # MP3: ID3 tag or sync bytes
    if audio[:3] == b"ID3" or (audio[0] == 0xFF and (audio[1] & 0xE0) == 0xE0):
        return "audio/mpeg", ".mp3"
    if audio[:4] == b"OggS":
        return "audio/ogg", ".ogg"
    if audio[:4] == b"fLaC":
        return "audio/flac", ".flac"
    # M4A / AAC / MP4 (ftyp box at offset 4)
    if audio[4:8] == b"ftyp":
        return "audio/mp4", ".m4a"
    # WebM (EBML header), what browser MediaRecorder produces
    if audio[:4] == b"\x1a\x45\xdf\xa3":
        return "audio/webm", ".webm"
    if audio[:6] == b"#!AMR\n":
        return "audio/amr", ".amr"

    return "audio/wav", ".wav"


def audio_filename(audio: bytes, mime_type: str | None) -> tuple[str, str]:
    """Pick (filename, mime) for an upload, trusting the declared type when known."""
    base_mime = (mime_type or "").split(";")[0].strip().lower()
    ext = _AUDIO_EXTENSIONS.get(base_mime)
    if ext is None:
        base_mime, ext = detect_audio_format(audio)
    return f"audio{ext}", base_mime
