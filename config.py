# config.py

import os

# --- API Configuration ---
API_URL = os.getenv('LLM_API_URL', 'https://10.216.70.62/DEV/litellm/chat/completions')
API_KEY = os.getenv('LLM_API_KEY', 'abcd')
# The internal LiteLLM proxy serves a self-signed certificate.
VERIFY_SSL = os.getenv('LLM_VERIFY_SSL', 'false').lower() == 'true'

# --- Model Selection ---
# PDFs go to the slower, stronger model; screenshots are fine on flash.
OCR_IMAGE_MODEL = os.getenv('OCR_IMAGE_MODEL', "gemini-2.5-flash")
OCR_PDF_MODEL = os.getenv('OCR_PDF_MODEL', "gemini-2.5-pro")
OCR_FALLBACK_MODELS = ["gemini-2.5-flash", "gemini-2.5-pro"]
EXTRACTION_MODEL = os.getenv('EXTRACTION_MODEL', "gemini-2.5-flash")

# --- Performance Configuration ---
# Limits the number of concurrent API requests to the LLM to prevent rate-limiting.
API_CONCURRENCY_LIMIT = 20
API_TIMEOUT_SECONDS = 300.0

# Defines the output directory for the final reports.
OUTPUT_DIR = os.getenv('OUTPUT_DIR', "job_outputs")

# --- Logging Configuration ---
LOG_DIR = os.getenv('LOG_DIR', "logs")
LOG_FILENAME = "donation_extraction.log"

# --- Retry Configuration ---
API_RETRIES = 5
EXPONENTIAL_BACKOFF_FACTOR = 2
JSON_RETRIES = 3

# --- Document Handling ---
DOCUMENT_SEPARATOR = "\n---\n"
SUPPORTED_MIME_TYPES = {
    'image/png': '.png',
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
    'image/webp': '.webp',
    'image/heic': '.heic',
    'image/tiff': '.tiff',
    'application/pdf': '.pdf',
}
ZIP_MEMBER_MIME_TYPES = {
    '.jpg': 'image/jpeg', '.jpeg': 'image/jpeg', '.png': 'image/png',
    '.webp': 'image/webp', '.tiff': 'image/tiff', '.tif': 'image/tiff',
    '.pdf': 'application/pdf',
}

# --- Field Definitions ---
# Order here is the column order of the batch CSV report.
FIELDS = [
    {"id": 1, "name": "amount"},
    {"id": 2, "name": "transactionId"},
    {"id": 3, "name": "utrNumber"},
    {"id": 4, "name": "date"},
    {"id": 5, "name": "time"},
    {"id": 6, "name": "paymentApp"},
    {"id": 7, "name": "senderPaymentApp"},
    {"id": 8, "name": "recipientPaymentApp"},
    {"id": 9, "name": "paymentMethod"},
    {"id": 10, "name": "senderName"},
    {"id": 11, "name": "senderUpiId"},
    {"id": 12, "name": "senderAccountNumber"},
    {"id": 13, "name": "senderBankName"},
    {"id": 14, "name": "recipientName"},
    {"id": 15, "name": "recipientPhone"},
    {"id": 16, "name": "recipientUpiId"},
    {"id": 17, "name": "recipientAccountNumber"},
    {"id": 18, "name": "status"},
    {"id": 19, "name": "type"},
    {"id": 20, "name": "purpose"},
    {"id": 21, "name": "notes"},
    {"id": 22, "name": "googlePayTransactionId"},
    {"id": 23, "name": "phonePeTransactionId"},
    {"id": 24, "name": "paytmUpiReferenceNo"},
    {"id": 25, "name": "googlePaySenderName"},
    {"id": 26, "name": "googlePayRecipientName"},
    {"id": 27, "name": "phonePeSenderName"},
    {"id": 28, "name": "phonePeRecipientName"},
    {"id": 29, "name": "paytmSenderName"},
    {"id": 30, "name": "paytmRecipientName"},
]

# A scanned proof is only usable with an amount and at least one reference.
REQUIRED_FIELDS = {
    "Amount": ["amount"],
    "Transaction ID": ["transactionId", "utrNumber"],
}
