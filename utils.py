# utils.py

import logging
import time
import random
import re
import base64
import binascii
import asyncio
from typing import Optional, Sequence, Tuple, Dict, Any
from logging.handlers import RotatingFileHandler
import os

import httpx
from dateutil import parser

import config
from schemas import APIRequestBody, APIRequestMessage, APIRequestMessageContent, APIResponseBody

logger = logging.getLogger(__name__)
number_of_api_retries = config.API_RETRIES
exponential_backoff_factor = config.EXPONENTIAL_BACKOFF_FACTOR

DATA_URI_PATTERN = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[\w-]+=[\w.-]+)*;base64,(?P<data>.*)$', re.DOTALL)


def parse_and_format_date(date_str: Optional[str]) -> Optional[str]:
    """Parses a date string and returns it as YYYY-MM-DD."""
    if not date_str or not isinstance(date_str, str):
        return date_str
    try:
        parsed_date = parser.parse(date_str, dayfirst=True)
        return parsed_date.strftime('%Y-%m-%d')
    except (parser.ParserError, TypeError, ValueError, OverflowError):
        logger.warning(f"Could not parse date: '{date_str}'. Returning original.")
        return date_str


def sanitize_amount(amount_str: Optional[str]) -> Optional[str]:
    """Cleans an amount string to be a valid number representation."""
    if isinstance(amount_str, (int, float)) and not isinstance(amount_str, bool):
        return str(amount_str)
    if not amount_str or not isinstance(amount_str, str):
        return amount_str
    # "Rs. 1,500.00" must not keep the dot from "Rs."
    amount_str = re.sub(r'(?i)\b(?:rs|inr)\.?', '', amount_str)
    cleaned_str = re.sub(r'[^\d.]', '', amount_str)
    if cleaned_str.count('.') > 1:
        parts = cleaned_str.split('.')
        cleaned_str = "".join(parts[:-1]) + "." + parts[-1]
    return cleaned_str


def parse_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """
    Splits a base64 data URI into its MIME type and decoded bytes.
    Raises ValueError for anything that is not a non-empty, supported document.
    """
    if not data_uri or not isinstance(data_uri, str):
        raise ValueError("Document is empty.")
    match = DATA_URI_PATTERN.match(data_uri.strip())
    if not match:
        raise ValueError("Document is not a base64 data URI.")
    mime_type = match.group('mime').lower()
    if mime_type not in config.SUPPORTED_MIME_TYPES:
        raise ValueError(f"Unsupported document type: {mime_type}.")
    try:
        data = base64.b64decode(match.group('data'), validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Document payload is not valid base64.")
    if not data:
        raise ValueError("Document payload is empty.")
    return mime_type, data


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def configure_logging():
    """
    Configures logging to write to a rotating file and the console.
    """
    # Ensure the log directory exists
    os.makedirs(config.LOG_DIR, exist_ok=True)
    log_file_path = os.path.join(config.LOG_DIR, config.LOG_FILENAME)

    log_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - [%(threadName)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Prevent duplicate handlers if this function is called multiple times
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # Rotates logs when they reach 10MB, keeping 5 old log files as backup.
    file_handler = RotatingFileHandler(
        log_file_path, maxBytes=10*1024*1024, backupCount=5
    )
    file_handler.setFormatter(log_formatter)
    root_logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(log_formatter)
    root_logger.addHandler(stream_handler)

    logger.info("Logging configured to write to file and console.")


def extract_json_from_text(text: str) -> str:
    """Extracts a JSON object from a string, including from markdown blocks."""
    match = re.search(r'```(?:json)?\s*(\{[\s\S]*\})\s*```', text)
    if match:
        return match.group(1).strip()
    start = text.find('{')
    end = text.rfind('}')
    if start != -1 and end != -1 and end > start:
        return text[start:end+1].strip()
    logger.warning("Could not find clear JSON markers, returning raw text.")
    return text


def build_response_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    """Wraps a JSON schema in the chat-completions structured output envelope."""
    return {"type": "json_schema", "json_schema": {"name": name, "schema": schema}}


async def call_model_async_with_retry(
    client: httpx.AsyncClient,
    model: str,
    prompt: str,
    data_uris: Sequence[str] = (),
    response_format: Optional[Dict[str, Any]] = None,
    max_retries: int = number_of_api_retries,
    initial_delay: float = 1.5
) -> str:
    """
    Calls the external LLM API asynchronously with robust retry logic and exponential backoff.
    Args:
        client: An httpx.AsyncClient instance for connection pooling.
        model: The model identifier to route the request to.
        prompt: The text prompt for the model.
        data_uris: Documents to attach, as base64 data URIs.
        response_format: Optional structured-output schema envelope.
        max_retries: Maximum number of retries for network errors.
        initial_delay: Initial delay in seconds for retries.
    Returns:
        The message content of the first choice, or "" if the model sent none.
    """
    headers = {'Content-Type': 'application/json', 'x-goog-api-key': config.API_KEY}

    content = [APIRequestMessageContent(type="text", text=prompt)]
    for uri in data_uris:
        content.append(APIRequestMessageContent(type="image_url", image_url={"url": uri}))
    messages = [APIRequestMessage(role="user", content=content)]

    api_request_body = APIRequestBody(model=model, messages=messages, response_format=response_format)
    data = api_request_body.model_dump(exclude_none=True)

    delay = initial_delay
    for i in range(max_retries):
        try:
            start_time = time.monotonic()
            response = await client.post(config.API_URL, headers=headers, json=data, timeout=config.API_TIMEOUT_SECONDS)
            duration = time.monotonic() - start_time
            logger.info(f"API call to {model} responded in {duration:.2f} seconds.")

            response.raise_for_status()
            try:
                api_response = APIResponseBody.model_validate(response.json())
            except ValueError as e:
                # Covers non-JSON bodies (proxy error pages) and JSON that is not a chat completion.
                raise httpx.DecodingError(f"Unexpected response body from {model}: {e}", request=response.request)

            if api_response.choices and api_response.choices[0].message.content:
                return api_response.choices[0].message.content
            logger.warning(f"API response from {model} is valid but has no content.")
            return ""

        except (httpx.RequestError, httpx.HTTPStatusError) as e:
            is_server_error = isinstance(e, httpx.HTTPStatusError) and e.response.status_code >= 500
            is_rate_limit_error = isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 429
            is_network_error = isinstance(e, httpx.RequestError)

            # Only retry on server errors, rate limits, or network errors.
            if not (is_server_error or is_rate_limit_error or is_network_error):
                logger.error(f"Non-retryable client error: {e}")
                raise

            logger.warning(f"API call failed (Attempt {i + 1}/{max_retries}): {e}.")
            if i == max_retries - 1:
                logger.error("Max retries exceeded.")
                raise

            wait_time = delay

            if is_rate_limit_error:
                retry_after_header = e.response.headers.get('Retry-After')
                if retry_after_header:
                    try:
                        wait_time = int(retry_after_header)
                        logger.info(f"Rate limit hit. Honoring 'Retry-After' header, waiting for {wait_time} seconds.")
                    except (ValueError, TypeError):
                        logger.warning(f"Could not parse 'Retry-After' header: '{retry_after_header}'. Using exponential backoff.")

            jitter = random.uniform(0, 1)
            total_wait = wait_time + jitter

            logger.info(f"Retrying in {total_wait:.2f} seconds.")
            await asyncio.sleep(total_wait)

            delay *= exponential_backoff_factor

    raise httpx.RequestError("API call failed after max retries.")
