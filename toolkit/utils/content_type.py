"""
Content type detection from the leading bytes of a file.

Follows the WHATWG MIME sniffing table for the formats web backends see
most: markup, documents, images, audio/video, fonts and archives. Anything
that looks like text falls back to text/plain, everything else to
application/octet-stream.
"""
from typing import List, Optional, Tuple

SNIFF_LENGTH = 512

TEXT_PLAIN = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

_whitespace = b"\t\n\x0c\r "

# Tags that mark HTML when followed by a space or ">", matched case-insensitively.
_html_tags = [
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
]

# (mask, pattern, skip leading whitespace, content type)
_masked_signatures: List[Tuple[bytes, bytes, bool, str]] = [
    (b"\xff\xff\xff\xff\xff", b"<?xml", True, "text/xml; charset=utf-8"),
    (b"\xff\xff", b"\xfe\xff", False, "text/plain; charset=utf-16be"),
    (b"\xff\xff", b"\xff\xfe", False, "text/plain; charset=utf-16le"),
    (b"\xff\xff\xff", b"\xef\xbb\xbf", False, TEXT_PLAIN),
    (b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
     b"RIFF\x00\x00\x00\x00WEBPVP", False, "image/webp"),
    (b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
     b"FORM\x00\x00\x00\x00AIFF", False, "audio/aiff"),
    (b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
     b"RIFF\x00\x00\x00\x00AVI ", False, "video/avi"),
    (b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
     b"RIFF\x00\x00\x00\x00WAVE", False, "audio/wave"),
]

_exact_signatures: List[Tuple[bytes, str]] = [
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"OTTO", "font/otf"),
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
]


def _strip_leading_whitespace(data: bytes) -> bytes:
    return data.lstrip(_whitespace)


def _match_html(data: bytes) -> bool:
    data = _strip_leading_whitespace(data)
    for tag in _html_tags:
        if len(data) < len(tag) + 1:
            continue
        if data[:len(tag)].upper() != tag:
            continue
        # The tag must be terminated so "<Bold" is not taken for "<B".
        if data[len(tag)] in b" >":
            return True
    return False


def _match_masked(data: bytes, mask: bytes, pattern: bytes, skip_whitespace: bool) -> bool:
    if skip_whitespace:
        data = _strip_leading_whitespace(data)
    if len(data) < len(pattern):
        return False
    return all(data[i] & mask[i] == pattern[i] for i in range(len(pattern)))


def _match_mp4(data: bytes) -> bool:
    # https://mimesniff.spec.whatwg.org/#signature-for-mp4
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], byteorder="big")
    if len(data) < box_size or box_size % 4 != 0:
        return False
    if data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            # Bytes 12-15 hold the minor version.
            continue
        if data[start:start + 3] == b"mp4":
            return True
    return False


def _is_binary(data: bytes) -> bool:
    return any(
        byte <= 0x08 or byte == 0x0B or 0x0E <= byte <= 0x1A or 0x1C <= byte <= 0x1F
        for byte in data
    )


def detect_content_type(data: bytes) -> str:
    """
    Return the MIME type implied by the first SNIFF_LENGTH bytes of data.

    Always returns a valid type; unrecognized binary data is reported as
    application/octet-stream.
    """
    data = data[:SNIFF_LENGTH]

    if _match_html(data):
        return "text/html; charset=utf-8"

    for mask, pattern, skip_whitespace, content_type in _masked_signatures:
        if _match_masked(data, mask, pattern, skip_whitespace):
            return content_type

    for signature, content_type in _exact_signatures:
        if data.startswith(signature):
            return content_type

    if _match_mp4(data):
        return "video/mp4"

    if not _is_binary(data):
        return TEXT_PLAIN

    return OCTET_STREAM


def content_type_allowed(content_type: str, allowed_types: Optional[List[str]]) -> bool:
    """
    An empty allow-list permits every type; otherwise compare case-insensitively.
    """
    if not allowed_types:
        return True
    return any(content_type.lower() == allowed.lower() for allowed in allowed_types)
