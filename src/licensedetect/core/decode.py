# decode.py
# SPDX-License-Identifier: MIT
"""Bytes -> text for license files, READMEs and source headers.

License texts show up in every encoding a repository can hold: UTF-8 with
or without a signature, UTF-16 from Windows editors, cp1252 files and UTF-8
that was saved through cp1252 once too often. :func:`decode_bytes` never
raises; the last resort always yields text.
"""

from __future__ import annotations

import re
import unicodedata as _ud
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from .log import get_logger

__all__ = [
    "DecodedText",
    "decode_bytes",
    "decode_prefix",
]

log = get_logger(__name__)

NormalizeForm = Literal["NFC", "NFD", "NFKC", "NFKD"]

# Bytes inspected when guessing UTF-16 byte order.
_SNIFF_BYTES = 4096


@dataclass(slots=True, frozen=True)
class DecodedText:
    """Decoded text plus the encoding that produced it.

    Attributes:
        text (str): Cleaned text with ``\\n`` line endings.
        encoding (str): Codec name that decoded the bytes.
        had_replacement (bool): True when U+FFFD is present in ``text``.
    """

    text: str
    encoding: str
    had_replacement: bool


# UTF-32 signatures share a prefix with UTF-16 ones and are listed first.
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\xEF\xBB\xBF", "utf-8-sig"),
    (b"\x00\x00\xFE\xFF", "utf-32-be"),
    (b"\xFF\xFE\x00\x00", "utf-32-le"),
    (b"\xFE\xFF", "utf-16-be"),
    (b"\xFF\xFE", "utf-16-le"),
)


def _signature_encoding(data: bytes) -> str | None:
    return next((enc for sig, enc in _SIGNATURES if data.startswith(sig)), None)


def _utf16_order(sample: bytes) -> str | None:
    """Guess UTF-16 byte order from where NUL bytes sit.

    Mostly-ASCII UTF-16 has a NUL in one half of every code unit; a clear
    majority at even offsets means big-endian, at odd offsets little-endian.
    """
    even = sample[0::2].count(0)
    odd = sample[1::2].count(0)
    if even + odd < max(4, len(sample) // 64):
        return None
    if even > odd * 2:
        return "utf-16-be"
    if odd > even * 2:
        return "utf-16-le"
    return None


def _strict_candidates(data: bytes) -> Iterator[str]:
    """Encodings worth a strict decode attempt, most specific first."""
    signed = _signature_encoding(data)
    if signed:
        yield signed
    yield "utf-8"
    order = _utf16_order(data[:_SNIFF_BYTES])
    if order:
        yield order


# Invisible characters that split words without showing up in the text.
_INVISIBLE = frozenset({"\u200b", "\u200c", "\u200d", "\u2060", "\ufeff"})

# UTF-8 read as cp1252 leaves pairs like 'Ã©' or 'â€™' behind.
_MOJIBAKE_RE = re.compile("[\u00c0-\u00ff][\u0080-\u00ff]|\u00c3.|\u00e2.|\u00c2|\ufffd")


def _keep_char(ch: str) -> bool:
    if ch in _INVISIBLE:
        return False
    return ch in "\n\t\f" or _ud.category(ch)[0] != "C"


def _repair_mojibake(text: str) -> str:
    """Undo a cp1252 misreading of UTF-8 when it clearly helps."""
    try:
        repaired = text.encode("cp1252").decode("utf-8")
    except UnicodeError:
        return text
    before = max(1, len(_MOJIBAKE_RE.findall(text)))
    after = len(_MOJIBAKE_RE.findall(repaired))
    return repaired if after * 3 < before else text


def _clean(text: str, normalize: NormalizeForm | None, strip_controls: bool) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if strip_controls:
        text = "".join(ch for ch in text if _keep_char(ch))
    if normalize:
        text = _ud.normalize(normalize, text)
    return text


def decode_bytes(
    data: bytes,
    *,
    normalize: NormalizeForm | None = "NFC",
    strip_controls: bool = True,
    fix_mojibake: bool = True,
) -> DecodedText:
    """Decode ``data`` into cleaned text.

    A byte-order signature wins, then strict UTF-8, then UTF-16 when the NUL
    layout suggests it. Everything else is read as cp1252 (latin-1 when
    cp1252 has undefined bytes), optionally repairing double-encoded UTF-8.

    Args:
        data (bytes): Raw file bytes.
        normalize (str | None): Unicode normalization form, or None to skip.
        strip_controls (bool): Drop control and zero-width characters.
        fix_mojibake (bool): Try the cp1252 -> UTF-8 repair on the fallback
            path.

    Returns:
        DecodedText: Cleaned text with the encoding used.
    """
    if not data:
        return DecodedText("", "utf-8", False)

    for enc in _strict_candidates(data):
        try:
            raw = data.decode(enc)
        except UnicodeDecodeError:
            log.debug("Strict %s decode failed", enc)
            continue
        text = _clean(raw, normalize, strip_controls)
        return DecodedText(text, enc, "\ufffd" in text)

    try:
        raw = data.decode("cp1252")
        enc = "cp1252"
    except UnicodeDecodeError:
        raw = data.decode("latin-1", errors="replace")
        enc = "latin-1"
    if fix_mojibake:
        raw = _repair_mojibake(raw)
    text = _clean(raw, normalize, strip_controls)
    return DecodedText(text, enc, "\ufffd" in text)


def decode_prefix(data: bytes, max_bytes: int) -> str:
    """Decode ``data`` and keep the text covered by its first ``max_bytes`` bytes.

    The cut happens on the UTF-8 encoding of the decoded text, dropping a
    trailing partial character, so multi-byte sequences are never split into
    replacement characters.
    """
    text = decode_bytes(data).text
    if max_bytes <= 0:
        return ""
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    return raw[:max_bytes].decode("utf-8", errors="ignore")
