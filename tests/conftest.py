"""Pytest configuration and shared fixtures."""
import base64
import json
import os
import tempfile

# Keep log files and reports out of the working tree; config reads these at import.
_scratch = tempfile.mkdtemp(prefix="donation_extraction_tests_")
os.environ.setdefault("LOG_DIR", os.path.join(_scratch, "logs"))
os.environ.setdefault("OUTPUT_DIR", os.path.join(_scratch, "job_outputs"))

import pytest


def make_data_uri(payload: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('utf-8')}"


def make_api_response(content, model="gemini-2.5-flash") -> dict:
    """A chat-completions response body as the LiteLLM proxy returns it."""
    return {
        "id": "chatcmpl-test",
        "created": 1719830000,
        "model": model,
        "object": "chat.completion",
        "choices": [
            {"finish_reason": "stop", "index": 0, "message": {"role": "assistant", "content": content}}
        ],
        "usage": {"completion_tokens": 10, "prompt_tokens": 100, "total_tokens": 110},
    }


@pytest.fixture
def png_data_uri() -> str:
    return make_data_uri(b"\x89PNG\r\n\x1a\nfake-screenshot-one", "image/png")


@pytest.fixture
def second_png_data_uri() -> str:
    return make_data_uri(b"\x89PNG\r\n\x1a\nfake-screenshot-two", "image/png")


@pytest.fixture
def pdf_data_uri() -> str:
    return make_data_uri(b"%PDF-1.4 fake receipt", "application/pdf")


@pytest.fixture
def phonepe_receipt_text() -> str:
    return (
        "पे\n"
        "Transaction Successful\n"
        "11:48 am on 14 Aug 2024\n"
        "Paid to\n"
        "SALMAN SANAULLAH SH\n"
        "dr.salmanshaik@okaxis\n"
        "₹1,500\n"
        "Transaction ID\n"
        "T2408141148123456789012\n"
        "UTR: 123456789012\n"
        "Debited from\n"
        "XXXXXXXX4321"
    )


@pytest.fixture
def gpay_receipt_text() -> str:
    return (
        "G Pay\n"
        "₹ 2,000\n"
        "Completed\n"
        "12 Sept 2024, 7:05 pm\n"
        "To: FATIMA BEGUM (State Bank of India)\n"
        "fatima.begum@oksbi\n"
        "From: ZAINUL BHAGNAGRI (IDBI Bank)\n"
        "zainul.b@okicici\n"
        "UPI transaction ID\n"
        "425612345678\n"
        "Google transaction ID\n"
        "CICAgJDq7oKZAQ"
    )


@pytest.fixture
def json_response():
    """Serialises a dict as the model's message content."""
    return lambda payload: json.dumps(payload)
