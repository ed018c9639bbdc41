"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('PROVER_FUNCTION_NAME', 'zkemail-prover-test')
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'INFO')


@pytest.fixture
def plain_email():
    """Simple single-part email from bigbank.com mentioning fraud."""
    return (
        "From: Jane Doe <jane.doe@BigBank.com>\r\n"
        "To: press@example.org\r\n"
        "Subject: Quarterly numbers\r\n"
        "DKIM-Signature: v=1; a=rsa-sha256; d=bigbank.com; s=selector1;\r\n"
        "Content-Type: text/plain; charset=\"UTF-8\"\r\n"
        "\r\n"
        "Hi,\r\n"
        "The FRAUD was confidential until the audit.\r\n"
    )


@pytest.fixture
def multipart_email():
    """multipart/alternative email with quoted-printable text and HTML parts."""
    return (
        "From: \"Compliance\" <compliance@bigbank.com>\n"
        "Subject: Internal memo\n"
        "MIME-Version: 1.0\n"
        "Content-Type: multipart/alternative; boundary=\"b1_memo\"\n"
        "\n"
        "This is a multi-part message in MIME format.\n"
        "--b1_memo\n"
        "Content-Type: text/plain; charset=\"UTF-8\"\n"
        "Content-Transfer-Encoding: quoted-printable\n"
        "\n"
        "The offshore accounts are confidential and must not be disc=\n"
        "losed. Caf=C3=A9 meeting at 5.\n"
        "\n"
        "--b1_memo\n"
        "Content-Type: text/html; charset=\"UTF-8\"\n"
        "\n"
        "<html><body><p>HTML version</p></body></html>\n"
        "\n"
        "--b1_memo--\n"
    )
