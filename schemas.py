# schemas.py

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Dict, Optional, Any, Union


class APIRequestMessageContent(BaseModel):
    """Defines a part of a multimodal message content (e.g., text or image)."""
    type: str
    text: Optional[str] = None
    image_url: Optional[Dict[str, str]] = None


class APIRequestMessage(BaseModel):
    """A single message in a chat conversation."""
    role: str
    content: Union[str, List[APIRequestMessageContent]]


class APIRequestBody(BaseModel):
    """The main body of the request sent to the Chat Completions API."""
    model: str
    messages: List[APIRequestMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    response_format: Optional[Dict[str, Any]] = None


class APIResponseMessage(BaseModel):
    """The message object returned by the API."""
    content: Optional[str] = None
    role: str


class Choice(BaseModel):
    """A single choice from the list of API responses."""
    finish_reason: Optional[str] = None
    index: int
    message: APIResponseMessage


class Usage(BaseModel):
    """Token usage statistics for the API call."""
    completion_tokens: int
    prompt_tokens: int
    total_tokens: int


class APIResponseBody(BaseModel):
    """The top-level structure of the API's JSON response."""
    id: str
    created: int
    model: str
    object: str
    choices: List[Choice]
    usage: Optional[Usage] = None
    system_fingerprint: Optional[Any] = None


class CamelModel(BaseModel):
    """Base for pipeline payloads; camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractRawTextInput(CamelModel):
    photo_data_uris: List[str] = Field(
        ...,
        description="One or more documents as base64 data URIs: 'data:<mimetype>;base64,<encoded_data>'."
    )


class RawTextResult(CamelModel):
    raw_text: str = Field(..., description="The full, raw text extracted from the document(s).")


class ExtractDetailsFromTextInput(CamelModel):
    raw_text: str = Field(..., description="Raw OCR text of a payment receipt.")


class DonationDetails(CamelModel):
    """
    Structured payment fields read off a receipt. Every field is optional;
    a field the receipt does not show stays unset and is left out of the
    serialized record.
    """
    amount: Optional[float] = Field(None, description="The primary transaction amount. It must be a number.")
    transaction_id: Optional[str] = Field(None, description="The main Transaction ID, Reference Number, or UPI Reference No.")
    utr_number: Optional[str] = Field(None, description="The UTR number, only if explicitly labeled as UTR.")
    date: Optional[str] = Field(None, description="The date of the transaction. Format it as YYYY-MM-DD.")
    time: Optional[str] = Field(None, description="The time of the transaction, e.g. '11:48 am'.")
    payment_app: Optional[str] = Field(None, description="The primary app used (e.g., Google Pay, PhonePe, Paytm).")
    sender_payment_app: Optional[str] = Field(None, description="The app the sender used.")
    recipient_payment_app: Optional[str] = Field(None, description="The app the recipient received money on, if shown.")
    payment_method: Optional[str] = Field(None, description="The method used, like 'UPI' or 'Bank Transfer'.")
    sender_name: Optional[str] = Field(None, description="The full name of the sender, without any bank name.")
    sender_upi_id: Optional[str] = Field(None, description="The sender's UPI ID (contains '@').")
    sender_account_number: Optional[str] = Field(None, description="The sender's bank account number, even if partial.")
    sender_bank_name: Optional[str] = Field(None, description="The name of the sender's bank.")
    recipient_name: Optional[str] = Field(None, description="The full name of the recipient, without any bank name.")
    recipient_phone: Optional[str] = Field(None, description="The recipient's phone number if visible.")
    recipient_upi_id: Optional[str] = Field(None, description="The recipient's UPI ID (contains '@').")
    recipient_account_number: Optional[str] = Field(None, description="The recipient's bank account number, even if partial.")
    status: Optional[str] = Field(None, description="The transaction status (e.g., Successful, Completed).")
    type: Optional[str] = Field(None, description="The category of donation if mentioned (e.g., Zakat, Sadaqah).")
    purpose: Optional[str] = Field(None, description="The specific purpose of the donation if mentioned.")
    notes: Optional[str] = Field(None, description="Any user-added comments, remarks, or descriptions.")
    google_pay_transaction_id: Optional[str] = Field(None, description="The Google Pay specific transaction ID.")
    phone_pe_transaction_id: Optional[str] = Field(None, description="The PhonePe specific transaction ID.")
    paytm_upi_reference_no: Optional[str] = Field(None, description="The Paytm specific UPI Reference No.")
    google_pay_sender_name: Optional[str] = None
    google_pay_recipient_name: Optional[str] = None
    phone_pe_sender_name: Optional[str] = None
    phone_pe_recipient_name: Optional[str] = None
    paytm_sender_name: Optional[str] = None
    paytm_recipient_name: Optional[str] = None
    raw_text: Optional[str] = Field(None, description="The OCR text the fields were read from.")

    def to_record(self) -> Dict[str, Any]:
        """Serializes to the camelCase record, leaving out absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ScanResult(BaseModel):
    success: bool
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
