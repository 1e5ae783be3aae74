# reconciliation.py

"""
Deterministic clean-up of the field record returned by the extraction model.

The prompt asks the model to follow the PhonePe / Google Pay / Paytm rules,
but nothing guarantees it does. The rules that can be checked against the
raw OCR text are enforced here, after the model call.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

import utils

logger = logging.getLogger(__name__)

PLACEHOLDER_VALUES = {"", "n/a", "na", "null", "none", "nil", "not found", "not available", "unknown", "-"}

SENDER_NAME_FIELDS = ["googlePaySenderName", "paytmSenderName", "phonePeSenderName"]
RECIPIENT_NAME_FIELDS = ["googlePayRecipientName", "paytmRecipientName", "phonePeRecipientName"]
NAME_FIELDS = ["senderName", "recipientName"] + SENDER_NAME_FIELDS + RECIPIENT_NAME_FIELDS
UPI_ID_FIELDS = ["senderUpiId", "recipientUpiId"]

# "UTR: 412345678901", "UTR No. 4123...", "UTR Number\n4123..."
UTR_LABEL_PATTERN = re.compile(
    r'\bUTR(?:\s*(?:No\.?|Number|Ref(?:erence)?(?:\s*No\.?)?))?\s*[:#.\-]?\s*'
    r'((?=[A-Za-z0-9]*\d)[A-Za-z0-9]{10,22})\b',
    re.IGNORECASE
)
BANK_PARENTHETICAL_PATTERN = re.compile(r'\s*\(([^()]*)\)\s*$')
GOOGLE_PAY_PATTERN = re.compile(r'\b(?:google\s*pay|g\s*pay)\b', re.IGNORECASE)


def find_labeled_utr(raw_text: Optional[str]) -> Optional[str]:
    """Returns the first value explicitly labeled as a UTR in the text."""
    if not raw_text:
        return None
    match = UTR_LABEL_PATTERN.search(raw_text)
    return match.group(1) if match else None


def strip_bank_parenthetical(name: str) -> Tuple[str, Optional[str]]:
    """
    Splits "Jane Doe (ICICI Bank)" into ("Jane Doe", "ICICI Bank").
    Parentheticals that do not look like a bank are left on the name.
    """
    match = BANK_PARENTHETICAL_PATTERN.search(name)
    if not match:
        return name, None
    inner = match.group(1).strip()
    if re.search(r'\bbank\b', inner, re.IGNORECASE) or re.fullmatch(r'[A-Z&]{2,6}', inner):
        return name[:match.start()].strip(), inner
    return name, None


def _is_placeholder(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in PLACEHOLDER_VALUES
    return False


def _same_reference(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return re.sub(r'\s+', '', str(a)).upper() == re.sub(r'\s+', '', str(b)).upper()


def _is_google_pay(record: Dict[str, Any]) -> bool:
    if "googlePayTransactionId" in record:
        return True
    return any(
        isinstance(record.get(key), str) and GOOGLE_PAY_PATTERN.search(record[key])
        for key in ("paymentApp", "senderPaymentApp")
    )


def drop_empty_values(record: Dict[str, Any]) -> Dict[str, Any]:
    """Removes absent and placeholder values; scalars other than the amount become strings."""
    cleaned = {}
    for key, value in record.items():
        if isinstance(value, (dict, list)) or _is_placeholder(value):
            continue
        if key == "amount":
            cleaned[key] = value
        elif isinstance(value, str):
            cleaned[key] = value.strip()
        elif not isinstance(value, bool):
            cleaned[key] = str(value)
    return cleaned


def _reconcile_amount(record: Dict[str, Any]) -> None:
    if "amount" not in record:
        return
    cleaned = utils.sanitize_amount(record["amount"])
    try:
        record["amount"] = float(cleaned)
    except (TypeError, ValueError):
        logger.warning(f"Dropping non-numeric amount: {record['amount']!r}")
        del record["amount"]


def _reconcile_names(record: Dict[str, Any]) -> None:
    for field in NAME_FIELDS:
        if field not in record:
            continue
        name, bank = strip_bank_parenthetical(record[field])
        if not name:
            del record[field]
            continue
        record[field] = name
        if bank and (field == "senderName" or field in SENDER_NAME_FIELDS):
            record.setdefault("senderBankName", bank)


def _reconcile_upi_ids(record: Dict[str, Any]) -> None:
    for field in UPI_ID_FIELDS:
        if field not in record:
            continue
        value = re.sub(r'\s+', '', record[field])
        if "@" not in value:
            logger.info(f"Dropping {field} without '@': {record[field]!r}")
            del record[field]
        else:
            record[field] = value


def _reconcile_references(record: Dict[str, Any], raw_text: Optional[str]) -> None:
    labeled_utr = find_labeled_utr(raw_text)
    google_id = record.get("googlePayTransactionId")

    if _same_reference(record.get("transactionId"), google_id):
        del record["transactionId"]

    if not labeled_utr:
        # A Google transaction ID on the record marks the receipt as Google Pay,
        # so an echoed Google ID in utrNumber is removed here too.
        if "utrNumber" in record and _is_google_pay(record):
            logger.info("Dropping utrNumber on a Google Pay receipt with no explicit UTR label.")
            del record["utrNumber"]
        return

    record["utrNumber"] = labeled_utr
    if _same_reference(record.get("transactionId"), labeled_utr):
        replacement = next(
            (record[key] for key in ("phonePeTransactionId", "paytmUpiReferenceNo")
             if key in record and not _same_reference(record[key], labeled_utr)),
            None
        )
        if replacement:
            record["transactionId"] = replacement
        else:
            del record["transactionId"]


def _apply_defaults(record: Dict[str, Any]) -> None:
    if "upi" in record.get("paymentMethod", "").lower():
        record["paymentMethod"] = "Online (UPI/Card)"
    if "paymentApp" not in record and "senderPaymentApp" in record:
        record["paymentApp"] = record["senderPaymentApp"]
    if "senderName" not in record:
        sender = next((record[key] for key in SENDER_NAME_FIELDS if key in record), None)
        if sender:
            record["senderName"] = sender
    if "recipientName" not in record:
        recipient = next((record[key] for key in RECIPIENT_NAME_FIELDS if key in record), None)
        if recipient:
            record["recipientName"] = recipient


def reconcile_details(record: Dict[str, Any], raw_text: Optional[str] = None) -> Dict[str, Any]:
    """
    Returns a cleaned copy of a model-produced donation record.

    Fields the model left out (or filled with placeholders) stay absent.
    A value explicitly labeled UTR in raw_text always ends up in utrNumber
    and never in transactionId.
    """
    record = drop_empty_values(record)
    _reconcile_amount(record)
    if "date" in record:
        record["date"] = utils.parse_and_format_date(record["date"])
    _reconcile_names(record)
    _reconcile_upi_ids(record)
    _reconcile_references(record, raw_text)
    _apply_defaults(record)
    return record
