# prompts.py

import json
from config import FIELDS


def get_ocr_prompt() -> str:
    """Instruction prompt for the verbatim OCR pass over a single document."""
    return """
You are an Optical Character Recognition (OCR) tool. You will be given one image or PDF document (typically a UPI payment screenshot, a bank transfer receipt, or a scanned donation receipt).

**Core Objective:** Extract all text from the document exactly as you see it.

**Rules:**
    1.  Maintain the original line breaks and reading order as best as possible.
    2.  Do not summarize, analyze, translate, correct, or reformat the text. Just extract it.
    3.  Keep labels together with their values when they sit on the same line (e.g., "UTR: 412345678901").
    4.  Transcribe symbols such as '₹', '@' and '/' exactly. UPI IDs must be copied character for character.
    5.  If a PDF has several pages, extract them in order, one after another.
    6.  If the document contains no readable text, return an empty string for `rawText`.

**Output Format:**

    * Your response **MUST** be a single, valid JSON object of the form: {"rawText": "<all extracted text>"}
    * **Do NOT** include any explanatory text or markdown formatting outside the JSON structure.
"""


# App-specific disambiguation rules. The order of each list is the order
# the model sees them in.
APP_RULES = {
    "PhonePe": [
        "The overall app is likely PhonePe if you see \"पे\" at the top or \"PhonePe\" text. Set it as 'senderPaymentApp' and 'paymentApp'.",
        "The sender's name is usually NOT shown on PhonePe receipts. Do not extract it from the \"Debited from\" section. Do not guess it.",
        "The recipient's name is under the \"Paid to\" section. Use it for 'phonePeRecipientName' and 'recipientName'.",
        "The recipient's UPI ID is often on the line directly below their name, or next to it. Capture it for 'recipientUpiId'.",
        "\"Transaction ID\" maps to 'phonePeTransactionId'. The primary 'transactionId' is also set to this value.",
        "\"UTR\" or \"UTR No\" maps to 'utrNumber'. A UTR is a long alphanumeric string.",
        "Cross-App Check: even if the sender's app is PhonePe, look for a different app logo (like \"G Pay\") in the \"Sent to\" section. If found, set 'recipientPaymentApp' to that app's name (e.g., \"Google Pay\").",
    ],
    "Google Pay": [
        "Look for \"From:\" and \"To:\" labels to identify sender and recipient blocks.",
        "The sender's name is on the lines following \"From:\". Combine text to get the full name. Remove any bank name in parentheses (e.g., \"(IDBI Bank)\"). Use it for 'googlePaySenderName' and 'senderName'.",
        "The sender's bank name is often inside the parentheses next to their name. Extract it for 'senderBankName'.",
        "The sender's UPI ID is on the line immediately following the sender name block and contains an '@' symbol. Use it for 'senderUpiId'.",
        "The recipient's name is on the first line of the \"To:\" block. Remove any bank name in parentheses. Use it for 'googlePayRecipientName' and 'recipientName'.",
        "The recipient's phone number is sometimes shown near their name. Capture it for 'recipientPhone'.",
        "The recipient's UPI ID is often shown below their name. Capture it for 'recipientUpiId'.",
        "CRITICAL: The \"UPI transaction ID\" is the primary identifier. You MUST map its value to the main 'transactionId' field.",
        "\"Google transaction ID\" maps ONLY to 'googlePayTransactionId'. DO NOT map it to 'utrNumber' or 'transactionId'.",
        "DO NOT capture a 'utrNumber' for Google Pay unless you see the explicit text \"UTR\" or \"UTR No\".",
        "Set 'paymentApp', 'senderPaymentApp', and 'recipientPaymentApp' to \"Google Pay\" unless there is evidence of another app being involved.",
    ],
    "Paytm": [
        "Look for \"From\" and \"To\" sections.",
        "The sender's name is usually next to \"From\". Use it for 'paytmSenderName' and 'senderName'.",
        "The recipient's name is usually next to \"To\". Use it for 'paytmRecipientName' and 'recipientName'.",
        "The \"UPI Reference No.\" is the most important transaction identifier. Use it for 'transactionId' and 'paytmUpiReferenceNo'.",
        "Set 'paymentApp', 'senderPaymentApp', and 'recipientPaymentApp' to \"Paytm\".",
    ],
}


def get_donation_details_prompt(raw_text: str) -> str:
    """
    Generates the instruction prompt for turning receipt OCR text into a
    donation record. The field list is built from config.FIELDS, so the
    prompt and the batch report columns never drift apart.
    """
    doc_fields = [field['name'] for field in FIELDS]

    field_descriptions = {
        "amount": "The primary transaction amount. Must be a number, without currency symbols or thousands separators.",
        "transactionId": {
            "description": "The main Transaction ID, Reference Number, or UPI Reference No.",
            "precedence": {
                "PhonePe": "the 'Transaction ID'",
                "Google Pay": "the 'UPI transaction ID' (never the 'Google transaction ID')",
                "Paytm": "the 'UPI Reference No.'",
            },
            "constraint": "A value explicitly labeled 'UTR' belongs in 'utrNumber', never in 'transactionId'."
        },
        "utrNumber": "The UTR number, only if explicitly labeled 'UTR', 'UTR No' or 'UTR Number'. In cross-app transfers the UTR is the most reliable identifier; always capture it when labeled.",
        "date": "The date of the transaction. Format: YYYY-MM-DD.",
        "time": "The time of the transaction (e.g., \"11:48 am\").",
        "paymentApp": "The primary app used for the transaction. Prefer 'senderPaymentApp' if available.",
        "senderPaymentApp": "The app the sender used (e.g., PhonePe, Google Pay, Paytm).",
        "recipientPaymentApp": "The app the recipient received money on, if specified (e.g., in a \"Sent to: G Pay\" section).",
        "paymentMethod": "The method used, like \"UPI\" or \"Bank Transfer\". If you see \"UPI\", you MUST return \"Online (UPI/Card)\".",
        "senderName": "The generic sender name. Prefer the app-specific name if present. Never include phone numbers, UPI IDs or bank names.",
        "senderUpiId": "The sender's UPI ID (contains '@').",
        "senderAccountNumber": "The sender's bank account number, even if partial (e.g., \"...1234\").",
        "senderBankName": "The name of the sender's bank.",
        "recipientName": "The generic recipient name. Prefer the app-specific name if present. Never include bank names.",
        "recipientPhone": "The recipient's phone number if it is shown near their name.",
        "recipientUpiId": "The recipient's UPI ID (contains '@').",
        "recipientAccountNumber": "The recipient's bank account number, even if partial.",
        "status": "The transaction status (e.g., Successful, Completed, Received).",
        "type": "The category of donation if mentioned (e.g., Zakat, Sadaqah). Check the notes/remarks for this.",
        "purpose": "The specific purpose of the donation if mentioned (e.g., Education, Hospital). Check the notes/remarks for this.",
        "notes": "Any user-added comments, remarks, or descriptions (often labeled \"Add a note\", \"Message\", or \"Remarks\").",
        "googlePayTransactionId": "The Google Pay specific 'Google transaction ID'.",
        "phonePeTransactionId": "The PhonePe specific 'Transaction ID'.",
        "paytmUpiReferenceNo": "The Paytm specific 'UPI Reference No.'.",
        "googlePaySenderName": "The sender's name from a Google Pay receipt.",
        "googlePayRecipientName": "The recipient's name from a Google Pay receipt.",
        "phonePeSenderName": "The sender's name if it appears on a PhonePe receipt (rare).",
        "phonePeRecipientName": "The recipient's name from a PhonePe receipt.",
        "paytmSenderName": "The sender's name from a Paytm receipt.",
        "paytmRecipientName": "The recipient's name from a Paytm receipt.",
    }

    fields_with_descriptions = []
    for field in doc_fields:
        description = field_descriptions.get(field)

        if description is None:
            formatted_description = "No description available."
        elif isinstance(description, dict):
            formatted_description = json.dumps(description, indent=4, ensure_ascii=False)
        else:
            formatted_description = str(description)

        fields_with_descriptions.append(f"- {field}: {formatted_description}")

    fields_list_str = "\n".join(fields_with_descriptions)

    app_rules_str = "\n\n".join(
        f"**{app} Rules:**\n" + "\n".join(f"    - {rule}" for rule in rules)
        for app, rules in APP_RULES.items()
    )

    return f"""
You are an expert financial assistant specializing in parsing text from payment receipts. Analyze the provided block of raw text, which was extracted via OCR from a payment screenshot. Your task is to carefully extract the fields listed below. Be precise. If a field is not present in the text, omit it entirely from the output. The text might have OCR errors, so be robust in your parsing.

**Primary Goal: Find UPI IDs. A UPI ID is any string containing an '@' symbol (e.g., username@okaxis).**

{app_rules_str}

**Field Definitions:**

{fields_list_str}

**Output Format:**

    * Your response **MUST** be a single, valid JSON object whose keys are the field names above.
    * Omit any field you cannot find. Do not output null, "N/A", or guessed values.
    * **Do NOT** include any explanatory text or markdown formatting outside the JSON structure.

Raw Text to Parse:
---
{raw_text}
---
"""
