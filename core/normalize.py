"""
Raw message normalization.
Turns a full notification email (headers included) into a subject and a
plain-text body: MIME part selection, transfer-encoding decoding and HTML
stripping. Normalization never raises; a message that cannot be decoded
falls back to its raw payload.
"""
import base64
import binascii
import re
from email.header import decode_header, make_header
from typing import Optional, Tuple

from bs4 import BeautifulSoup

from core.logger import preview, setup_logger
from core.schema import NormalizedMessage, RawMessage

logger = setup_logger(__name__)

_BLANK_LINE_RE = re.compile(r"\r?\n\r?\n")
_SOFT_BREAK_RE = re.compile(r"=\r?\n")
_QP_ESCAPE_RE = re.compile(rb"=([0-9A-Fa-f]{2})")
_BOUNDARY_RE = re.compile(r'boundary="?([^";\s]+)"?', re.IGNORECASE)
_CHARSET_RE = re.compile(r'charset="?([\w.:-]+)"?', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s")

_SPACES_RE = re.compile(r"\s+")


def split_message(raw: str) -> Tuple[str, str]:
    """
    Split a message (or MIME part) at its first blank line.

    Returns:
        (header_block, body). Without a blank line the header block is empty
        and the whole input is the body.
    """
    parts = _BLANK_LINE_RE.split(raw, maxsplit=1)
    if len(parts) < 2:
        return "", raw
    return parts[0], parts[1]


def extract_header(raw: str, name: str) -> Optional[str]:
    """
    Case-insensitive, single-line header lookup.
    Continuation lines are not joined.
    """
    pattern = re.compile(rf"^{re.escape(name)}:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
    match = pattern.search(raw)
    return match.group(1).strip() if match else None


def decode_header_value(value: str) -> str:
    """Decode RFC 2047 encoded words (=?UTF-8?B?...?=) in a header value."""
    if "=?" not in value:
        return value
    try:
        return str(make_header(decode_header(value)))
    except (LookupError, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Could not decode header value {value!r}: {e}")
        return value


def _bytes_to_text(data: bytes, charset: Optional[str] = None) -> str:
    for candidate in ("utf-8", charset):
        if not candidate:
            continue
        try:
            return data.decode(candidate)
        except (LookupError, UnicodeDecodeError):
            continue
    return data.decode("latin-1")


def decode_quoted_printable(text: str, charset: Optional[str] = None) -> str:
    """
    Decode quoted-printable content.
    Soft line breaks are removed first, then =XX escapes are decoded.
    """
    joined = _SOFT_BREAK_RE.sub("", text)
    data = _QP_ESCAPE_RE.sub(lambda m: bytes([int(m.group(1), 16)]), joined.encode("utf-8"))
    return _bytes_to_text(data, charset)


def decode_base64(text: str, charset: Optional[str] = None) -> str:
    """Decode base64 content, leaving the text untouched if it is not valid base64."""
    compact = _WHITESPACE_RE.sub("", text)
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Body is not valid base64, keeping as-is: {e}")
        return text
    return _bytes_to_text(data, charset)


def strip_html(html: str) -> str:
    """
    Reduce HTML to plain text.

    Drops <style>/<script> blocks, separates text nodes with a space,
    decodes every named and numeric entity (&oacute;, &#36;, ...) and
    collapses whitespace, &nbsp; included.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style"]):
        tag.decompose()

    text = soup.get_text(separator=" ")
    return _SPACES_RE.sub(" ", text).strip()


def _charset_of(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    match = _CHARSET_RE.search(content_type)
    return match.group(1) if match else None


def extract_mime_part(body: str, boundary: str) -> Optional[Tuple[str, str, str]]:
    """
    Pick the best text part of a multipart body.

    text/plain is preferred over text/html; nested multipart parts are
    searched as well.

    Returns:
        (part_body, part_headers, "plain" | "html") or None when no text part exists
    """
    plain = None
    html = None

    for part in body.split("--" + boundary):
        part_headers, part_body = split_message(part.lstrip("\r\n"))
        if not part_headers:
            continue

        content_type = (extract_header(part_headers, "Content-Type") or "").lower()

        if content_type.startswith("multipart/"):
            nested = _BOUNDARY_RE.search(extract_header(part_headers, "Content-Type") or "")
            if nested:
                found = extract_mime_part(part_body, nested.group(1))
                if found and found[2] == "plain" and plain is None:
                    plain = found
                elif found and found[2] == "html" and html is None:
                    html = found
        elif "text/plain" in content_type and plain is None:
            plain = (part_body.strip(), part_headers, "plain")
        elif "text/html" in content_type and html is None:
            html = (part_body.strip(), part_headers, "html")

    return plain or html


def _decode_transfer_encoding(text: str, encoding: Optional[str], charset: Optional[str]) -> str:
    encoding = (encoding or "").lower()
    if "quoted-printable" in encoding:
        return decode_quoted_printable(text, charset)
    if "base64" in encoding:
        return decode_base64(text, charset)
    return text


def extract_body(raw: str) -> str:
    """
    Extract the readable body of a raw message.

    Args:
        raw: Full message text, headers included

    Returns:
        Decoded body text (HTML stripped when no plain-text part exists)
    """
    headers, body = split_message(raw)
    if not headers:
        return raw

    content_type = extract_header(headers, "Content-Type") or ""
    encoding = extract_header(headers, "Content-Transfer-Encoding")
    charset = _charset_of(content_type)
    is_html = content_type.lower().startswith("text/html")

    if "multipart" in content_type.lower():
        boundary = _BOUNDARY_RE.search(content_type)
        if boundary:
            selected = extract_mime_part(body, boundary.group(1))
            if selected:
                body, part_headers, kind = selected
                encoding = extract_header(part_headers, "Content-Transfer-Encoding") or encoding
                charset = _charset_of(extract_header(part_headers, "Content-Type")) or charset
                is_html = kind == "html"
            else:
                logger.debug("Multipart message without text parts, using raw body")

    body = _decode_transfer_encoding(body, encoding, charset)

    if is_html:
        body = strip_html(body)

    return body


def normalize_message(message: RawMessage) -> NormalizedMessage:
    """
    Normalize a raw message into subject + plain-text body.

    Never raises: on any decode failure the raw payload becomes the body.
    """
    raw = message.payload_text()
    subject = ""

    try:
        headers, _ = split_message(raw)
        subject = decode_header_value(extract_header(headers or raw, "Subject") or "")
        body = extract_body(raw)
    except Exception as e:
        logger.warning(f"Failed to normalize message, using raw payload as body: {e}", exc_info=True)
        body = raw

    logger.debug(f"Normalized message: subject={subject!r}, body={preview(body)!r}")

    return NormalizedMessage(
        subject=subject,
        body=body,
        raw_from=message.from_,
        raw_to=message.to,
    )
