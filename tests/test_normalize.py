"""
Unit tests for raw message normalization.
"""
import base64

from core.normalize import (
    decode_base64,
    decode_quoted_printable,
    extract_header,
    extract_mime_part,
    normalize_message,
    split_message,
    strip_html,
)
from core.schema import RawMessage
from conftest import build_raw_email


def _message(raw, sender="info@mercadopago.com"):
    return RawMessage(to="user_abc123@example.com", from_=sender, payload=raw)


def test_plain_message_subject_and_body():
    """Test a simple text/plain message."""
    raw = build_raw_email("Recibiste una transferencia", "Te enviaron $2.500")
    normalized = normalize_message(_message(raw))

    assert normalized.subject == "Recibiste una transferencia"
    assert normalized.body == "Te enviaron $2.500"
    assert normalized.raw_from == "info@mercadopago.com"
    assert normalized.raw_to == "user_abc123@example.com"


def test_crlf_message():
    """CRLF line endings split the same way as LF."""
    raw = build_raw_email("Pagaste", "Pagaste $100", newline="\r\n")
    normalized = normalize_message(_message(raw))

    assert normalized.subject == "Pagaste"
    assert normalized.body == "Pagaste $100"


def test_bytes_payload():
    """Byte payloads are decoded before parsing."""
    raw = build_raw_email("Depósito", "Ingresaron $1.000").encode("utf-8")
    normalized = normalize_message(_message(raw))

    assert normalized.subject == "Depósito"
    assert normalized.body == "Ingresaron $1.000"


def test_message_without_blank_line_is_all_body():
    """Without a header/body separator the whole payload is the body."""
    normalized = normalize_message(_message("just some forwarded text"))

    assert normalized.subject == ""
    assert normalized.body == "just some forwarded text"


def test_header_lookup_is_case_insensitive():
    """Test header lookup ignores case."""
    headers = "FROM: a@b.com\nsubject: Hola\ncontent-type: text/plain"
    assert extract_header(headers, "Subject") == "Hola"
    assert extract_header(headers, "Content-Type") == "text/plain"
    assert extract_header(headers, "X-Missing") is None


def test_encoded_word_subject():
    """RFC 2047 encoded subjects are decoded."""
    raw = build_raw_email("=?utf-8?q?Recibiste_una_transferencia?=", "Te enviaron $10")
    normalized = normalize_message(_message(raw))

    assert normalized.subject == "Recibiste una transferencia"


def test_split_message():
    """Test header/body split on the first blank line."""
    headers, body = split_message("A: 1\nB: 2\n\nline one\n\nline two")
    assert headers == "A: 1\nB: 2"
    assert body == "line one\n\nline two"


def test_quoted_printable_decoding():
    """Soft line breaks are removed and hex escapes decoded as UTF-8."""
    text = "Transferencia de Mar=C3=ADa=\n L=C3=B3pez por =245.000"
    assert decode_quoted_printable(text) == "Transferencia de María López por $5.000"


def test_quoted_printable_latin1_charset():
    """Bytes that are not UTF-8 fall back to the declared charset."""
    assert decode_quoted_printable("Operaci=F3n", "iso-8859-1") == "Operación"


def test_quoted_printable_message():
    """Top-level quoted-printable bodies are decoded."""
    raw = build_raw_email(
        "Recibiste dinero",
        "Jos=C3=A9 te transfiri=C3=B3 $1.200",
        encoding="quoted-printable",
    )
    normalized = normalize_message(_message(raw))

    assert normalized.body == "José te transfirió $1.200"


def test_base64_message():
    """Top-level base64 bodies are decoded with whitespace ignored."""
    encoded = base64.b64encode("Pagaste $3.450,75 en Café Martínez".encode("utf-8")).decode("ascii")
    wrapped = encoded[:20] + "\n" + encoded[20:]
    raw = build_raw_email("Pagaste", wrapped, encoding="base64")
    normalized = normalize_message(_message(raw))

    assert normalized.body == "Pagaste $3.450,75 en Café Martínez"


def test_invalid_base64_left_unchanged():
    """Test that undecodable base64 leaves the text as-is."""
    assert decode_base64("not base64 at all!") == "not base64 at all!"


def test_strip_html():
    """Test HTML reduction to plain text."""
    html = (
        "<html><head><style>p { color: red; }</style><script>var x = 1;</script></head>"
        "<body><p>Hola&nbsp;<b>Juan</b></p><p>1 &lt; 2 &amp;&amp; 3 &gt; 2</p></body></html>"
    )
    assert strip_html(html) == "Hola Juan 1 < 2 && 3 > 2"


def test_strip_html_decodes_named_and_numeric_entities():
    """Accented letters, symbols and numeric references are decoded."""
    html = "<p>Realizaste una extracci&oacute;n de &#36;5.000</p><p>Operaci&oacute;n N&deg; 12345678</p>"
    assert strip_html(html) == "Realizaste una extracción de $5.000 Operación N° 12345678"


def test_html_message_is_stripped():
    """A top-level text/html body is reduced to text."""
    raw = build_raw_email(
        "Pagaste",
        "<div>Pagaste <strong>$500</strong></div>",
        content_type="text/html; charset=utf-8",
    )
    normalized = normalize_message(_message(raw))

    assert normalized.body == "Pagaste $500"


MULTIPART_BOTH = """From: info@mercadopago.com
Subject: Recibiste dinero
Content-Type: multipart/alternative; boundary="BOUNDARY"

--BOUNDARY
Content-Type: text/html; charset=utf-8

<p>HTML version $1</p>
--BOUNDARY
Content-Type: text/plain; charset=utf-8

Plain version $2
--BOUNDARY--
"""

MULTIPART_HTML_ONLY = """From: info@mercadopago.com
Subject: Recibiste dinero
Content-Type: multipart/alternative; boundary=XYZ

--XYZ
Content-Type: text/html; charset=utf-8
Content-Transfer-Encoding: quoted-printable

<p>Recibiste <b>$1.500</b> de Jos=C3=A9</p>
--XYZ--
"""

MULTIPART_NESTED = """From: info@mercadopago.com
Subject: Comprobante
Content-Type: multipart/mixed; boundary="outer"

--outer
Content-Type: multipart/alternative; boundary="inner"

--inner
Content-Type: text/plain; charset=utf-8

Nested plain $7
--inner--

--outer
Content-Type: application/pdf

JVBERi0=
--outer--
"""


def test_multipart_prefers_plain_part():
    """text/plain wins over text/html regardless of order."""
    normalized = normalize_message(_message(MULTIPART_BOTH))
    assert normalized.body == "Plain version $2"


def test_multipart_html_part_uses_its_own_encoding():
    """An HTML-only multipart is decoded with the part's transfer encoding and stripped."""
    normalized = normalize_message(_message(MULTIPART_HTML_ONLY))
    assert normalized.body == "Recibiste $1.500 de José"


def test_multipart_nested_alternative():
    """Text parts inside nested multipart containers are found."""
    normalized = normalize_message(_message(MULTIPART_NESTED))
    assert normalized.subject == "Comprobante"
    assert normalized.body == "Nested plain $7"


def test_extract_mime_part_without_text_parts():
    """Test that a multipart body with no text parts yields None."""
    body = "--B\nContent-Type: image/png\n\nabc\n--B--\n"
    assert extract_mime_part(body, "B") is None
