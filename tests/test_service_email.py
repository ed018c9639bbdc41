"""
Tests for email body extraction service.
"""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from services import email


class TestDecodeQuotedPrintable:
    """Test quoted-printable decoding."""

    def test_round_trip_known_plaintext(self):
        """Test decoding a hand-encoded text reproduces the original exactly."""
        original = "Prix: 10 € = cheap; café crème\nsecond line with a very long tail"
        encoded = (
            "Prix: 10 =E2=82=AC =3D cheap; caf=C3=A9 cr=C3=A8me\n"
            "second line with a v=\n"
            "ery long tail"
        )

        assert email.decode_quoted_printable(encoded) == original

    def test_soft_line_break_crlf(self):
        """Test soft line breaks with CRLF are removed entirely."""
        assert email.decode_quoted_printable("confi=\r\ndential") == "confidential"

    def test_lowercase_hex_escape(self):
        """Test lowercase hex digits are accepted."""
        assert email.decode_quoted_printable("a=3db") == "a=b"

    def test_malformed_escape_left_unmodified(self):
        """Test non-hex escapes are kept as-is instead of raising."""
        assert email.decode_quoted_printable("total =ZZ and =4") == "total =ZZ and =4"

    def test_invalid_utf8_bytes_replaced(self):
        """Test bytes that are not valid UTF-8 become replacement characters."""
        assert email.decode_quoted_printable("bad =FF byte") == "bad � byte"


class TestSplitHeadersAndBody:
    """Test header/body separation."""

    def test_lf_separator(self):
        headers, body, found = email.split_headers_and_body("A: 1\nB: 2\n\nbody\n\nmore")

        assert headers == "A: 1\nB: 2"
        assert body == "body\n\nmore"
        assert found is True

    def test_crlf_separator(self):
        headers, body, found = email.split_headers_and_body("A: 1\r\n\r\nbody")

        assert headers == "A: 1"
        assert body == "body"
        assert found is True

    def test_no_separator(self):
        """Test degenerate fallback treats everything as body."""
        headers, body, found = email.split_headers_and_body("no blank line here")

        assert headers == ''
        assert body == "no blank line here"
        assert found is False


class TestExtractBody:
    """Test full body extraction and normalization."""

    def test_simple_text_email(self, plain_email):
        """Test single-part text email is lowercased and line endings normalized."""
        result = email.extract_body(plain_email)

        assert result.text == "hi,\nthe fraud was confidential until the audit."
        assert result.content_type == 'text/plain'
        assert result.header_separator_found is True
        assert result.part_count == 1

    def test_multipart_prefers_text_plain(self, multipart_email):
        """Test the text/plain part wins over the HTML part and QP is decoded."""
        result = email.extract_body(multipart_email)

        assert result.content_type == 'text/plain'
        assert result.part_count == 2
        assert "must not be disclosed" in result.text
        assert "café meeting" in result.text
        assert "html version" not in result.text
        assert "b1_memo" not in result.text
        assert "multi-part message" not in result.text

    def test_html_only_multipart(self):
        """Test HTML fallback with tag stripping."""
        raw = (
            "From: a@b.com\n"
            "Content-Type: multipart/alternative; boundary=XYZ\n"
            "\n"
            "--XYZ\n"
            "Content-Type: text/html; charset=utf-8\n"
            "\n"
            "<div>The <b>fraud</b> &amp; the <i>cover-up</i>&nbsp;were real</div>\n"
            "--XYZ--\n"
        )

        result = email.extract_body(raw)

        assert result.content_type == 'text/html'
        assert result.text == "the fraud & the cover-up were real"
        assert '<' not in result.text

    def test_html_tags_with_soft_breaks_and_qp(self):
        """Test QP-encoded HTML with attributes and broken lines."""
        raw = (
            "Content-Type: text/html\n"
            "Content-Transfer-Encoding: quoted-printable\n"
            "\n"
            "<p style=3D\"color:red\">Secret <a href=3D\"https://x.io/=\n"
            "path\">report</a></p>\n"
        )

        assert email.extract_body(raw).text == "secret report"

    def test_unbalanced_markup(self):
        """Test tag stripping does not require well-formed markup."""
        raw = "Content-Type: text/html\n\n<p>open <b>bold text <unclosed"

        assert email.extract_body(raw).text == "open bold text <unclosed"

    def test_nested_multipart(self):
        """Test text part inside a nested multipart/alternative is found."""
        raw = (
            "From: a@b.com\n"
            "Content-Type: multipart/mixed; boundary=\"outer\"\n"
            "\n"
            "--outer\n"
            "Content-Type: multipart/alternative; boundary=\"inner\"\n"
            "\n"
            "--inner\n"
            "Content-Type: text/plain\n"
            "\n"
            "Nested Plain Text\n"
            "--inner\n"
            "Content-Type: text/html\n"
            "\n"
            "<p>nested html</p>\n"
            "--inner--\n"
            "\n"
            "--outer\n"
            "Content-Type: application/pdf\n"
            "Content-Transfer-Encoding: base64\n"
            "\n"
            "JVBERi0xLjQK\n"
            "--outer--\n"
        )

        result = email.extract_body(raw)

        assert result.text == "nested plain text"
        assert result.part_count == 3

    def test_multipart_without_text_part(self):
        """Test multipart with only binary parts yields an empty body."""
        raw = (
            "Content-Type: multipart/mixed; boundary=\"b\"\n"
            "\n"
            "--b\n"
            "Content-Type: image/png\n"
            "\n"
            "iVBORw0KGgo=\n"
            "--b--\n"
        )

        result = email.extract_body(raw)

        assert result.text == ''
        assert result.content_type is None

    def test_no_separator_treats_all_as_body(self):
        """Test degenerate message without a blank line."""
        result = email.extract_body("From: a@b.com\nSubject: Leak of SECRET data")

        assert result.header_separator_found is False
        assert "secret data" in result.text

    def test_whitespace_and_entities_normalized(self):
        """Test spacing collapse and entity decoding."""
        raw = "Subject: x\n\n  Hello\t\t World  \r\n&lt;tag&gt; &quot;q&quot; &amp;lt;\r\n"

        assert email.extract_body(raw).text == 'hello world\n<tag> "q" &lt;'

    def test_single_part_unknown_type_is_plain_text(self):
        """Test a message without a boundary is one implicit plain-text part."""
        raw = "From: a@b.com\nContent-Type: text/x-custom\n\nThe <b>FRAUD</b> happened\n"

        result = email.extract_body(raw)

        assert result.content_type == 'text/plain'
        assert result.text == "the <b>fraud</b> happened"

    def test_single_part_multipart_without_boundary(self):
        """Test a multipart declaration with no boundary parameter falls back to plain text."""
        raw = "Content-Type: multipart/mixed\n\nthe fraud happened"

        assert email.extract_body(raw).text == "the fraud happened"

    def test_qp_non_breaking_space_collapsed(self):
        """Test a QP-encoded U+00A0 separates words like a regular space."""
        raw = "Content-Transfer-Encoding: quoted-printable\n\nOffshore=C2=A0 =C2=A0accounts\n"

        assert email.extract_body(raw).text == "offshore accounts"

    def test_empty_message(self):
        """Test empty and None input."""
        assert email.extract_body('').text == ''
        assert email.extract_body(None).text == ''

    def test_idempotent(self, multipart_email, plain_email):
        """Test repeated extraction yields identical output."""
        for raw in (multipart_email, plain_email):
            assert email.extract_normalized_body(raw) == email.extract_normalized_body(raw)

    def test_unicode_body(self):
        """Test non-ASCII bodies pass through intact."""
        raw = "From: a@b.com\n\nEmail body with Unicode: 日本語 العربية\n"

        result = email.extract_body(raw)

        assert '日本語' in result.text
        assert 'العربية' in result.text


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
