# processing.py

import os
import io
import re
import zipfile
import time
import logging
import json
from typing import List, Dict, Any, Sequence
import asyncio

import pandas as pd
import httpx

import config
import prompts
import utils
from exceptions import NoTextExtractedError, NoStructuredOutputError, MissingRequiredFieldsError
from reconciliation import reconcile_details
from schemas import RawTextResult, DonationDetails

logger = logging.getLogger(__name__)
number_of_json_retries = config.JSON_RETRIES

SEPARATOR_LINE_PATTERN = re.compile(r'^[ \t]*-{3,}[ \t]*$\n?', re.MULTILINE)
RAW_TEXT_RESPONSE_FORMAT = utils.build_response_format("raw_text", RawTextResult.model_json_schema())


def _donation_details_response_format() -> Dict[str, Any]:
    schema = DonationDetails.model_json_schema()
    schema.get("properties", {}).pop("rawText", None)
    return utils.build_response_format("donation_details", schema)


def _models_for(mime_type: str) -> List[str]:
    """Primary OCR model for the content type, followed by the fallbacks."""
    primary = config.OCR_PDF_MODEL if mime_type == 'application/pdf' else config.OCR_IMAGE_MODEL
    return [primary] + [model for model in config.OCR_FALLBACK_MODELS if model != primary]


def _parse_raw_text(response_text: str) -> str:
    """Reads rawText out of the OCR response; plain-text answers are taken as-is."""
    if not response_text or not response_text.strip():
        return ""
    try:
        parsed = json.loads(utils.extract_json_from_text(response_text))
    except json.JSONDecodeError:
        logger.warning("OCR response was not JSON; using the response text verbatim.")
        return response_text.strip()
    if isinstance(parsed, dict) and "rawText" in parsed:
        return str(parsed["rawText"] or "").strip()
    # Braces inside a plain-text answer are receipt content, not our JSON.
    return response_text.strip()


async def _ocr_single_document(client: httpx.AsyncClient, data_uri: str, mime_type: str, position: int) -> str:
    ocr_prompt = prompts.get_ocr_prompt()
    last_error = None
    got_empty_answer = False

    for model in _models_for(mime_type):
        try:
            logger.info(f"Trying {model} for OCR of document {position} ({mime_type}).")
            response_text = await utils.call_model_async_with_retry(
                client, model, ocr_prompt, [data_uri], response_format=RAW_TEXT_RESPONSE_FORMAT
            )
        except (httpx.HTTPError, ValueError) as e:
            last_error = e
            logger.error(f"Error with {model} for OCR of document {position}: {e}")
            continue

        text = _parse_raw_text(response_text)
        if text:
            logger.info(f"Extracted {len(text)} characters from document {position} with {model}.")
            return SEPARATOR_LINE_PATTERN.sub('', text).strip()
        got_empty_answer = True
        logger.warning(f"{model} returned no text for document {position}.")

    if last_error is not None and not got_empty_answer:
        raise last_error
    raise NoTextExtractedError(
        f"The AI model did not return any text for document {position}. "
        "The document might be unreadable or contain no text."
    )


async def extract_raw_text(client: httpx.AsyncClient, data_uris: Sequence[str]) -> RawTextResult:
    """
    Runs OCR over one or more data-URI documents and joins their texts with
    a single '---' line between consecutive documents.
    """
    if not data_uris:
        raise NoTextExtractedError("No documents were provided for text extraction.")

    documents = []
    for position, data_uri in enumerate(data_uris, start=1):
        try:
            mime_type, _ = utils.parse_data_uri(data_uri)
        except ValueError as e:
            raise NoTextExtractedError(f"Document {position} could not be read: {e}") from e
        documents.append((position, data_uri, mime_type))

    texts = []
    for position, data_uri, mime_type in documents:
        texts.append(await _ocr_single_document(client, data_uri, mime_type, position))

    return RawTextResult(raw_text=config.DOCUMENT_SEPARATOR.join(texts))


async def extract_details_from_text(client: httpx.AsyncClient, raw_text: str) -> DonationDetails:
    """
    Asks the extraction model for the donation fields found in raw_text.
    Includes a retry mechanism for transient JSON parsing errors.
    """
    if not raw_text or not raw_text.strip():
        raise NoTextExtractedError("No raw text was provided to extract details from.")

    extraction_prompt = prompts.get_donation_details_prompt(raw_text)
    response_format = _donation_details_response_format()

    for attempt in range(number_of_json_retries):
        response_text = await utils.call_model_async_with_retry(
            client, config.EXTRACTION_MODEL, extraction_prompt, response_format=response_format
        )
        if not response_text or not response_text.strip():
            raise NoStructuredOutputError("The AI model did not return any output from the text.")

        try:
            parsed = json.loads(utils.extract_json_from_text(response_text))
        except json.JSONDecodeError as e:
            logger.warning(f"JSON parsing failed on attempt {attempt + 1}/{number_of_json_retries}.")
            if attempt < number_of_json_retries - 1:
                await asyncio.sleep(1)
                continue
            raise NoStructuredOutputError(f"The AI model returned malformed output after {number_of_json_retries} attempts: {e}") from e

        if not isinstance(parsed, dict) or not parsed:
            raise NoStructuredOutputError("The AI model did not return any output from the text.")

        parsed.pop("rawText", None)
        record = reconcile_details(parsed, raw_text)
        return DonationDetails.model_validate(record)

    raise NoStructuredOutputError("The AI model did not return any output from the text.")


async def extract_donation_details(client: httpx.AsyncClient, data_uris: Sequence[str]) -> DonationDetails:
    """OCR followed by field extraction; the raw text is kept on the result for auditing."""
    raw = await extract_raw_text(client, data_uris)
    details = await extract_details_from_text(client, raw.raw_text)
    return details.model_copy(update={"raw_text": raw.raw_text})


def find_missing_required_fields(details: DonationDetails) -> List[str]:
    record = details.to_record()
    return [
        label for label, keys in config.REQUIRED_FIELDS.items()
        if not any(record.get(key) for key in keys)
    ]


async def scan_proof(client: httpx.AsyncClient, data_uri: str) -> DonationDetails:
    """Scans a single payment screenshot and insists on an amount and a reference."""
    details = await extract_donation_details(client, [data_uri])
    missing = find_missing_required_fields(details)
    if missing:
        raise MissingRequiredFieldsError(missing)
    return details


async def process_single_document_async(
    client: httpx.AsyncClient,
    semaphore: asyncio.Semaphore,
    file_info: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Asynchronously processes one receipt, respecting the concurrency semaphore.
    Failures are recorded on the result rather than raised.
    """
    async with semaphore:
        file_path = file_info['path']
        filename = os.path.basename(file_path)
        logger.info(f"Starting processing for: {filename}")
        try:
            data_uri = utils.to_data_uri(file_info['data'], file_info['type'])
            details = await extract_donation_details(client, [data_uri])
            logger.info(f"Successfully processed: {filename}")
            return {"file_path": file_path, "record": details.to_record()}
        except Exception as e:
            logger.error(f"An error occurred while processing {filename}: {e}", exc_info=True)
            return {"error": str(e), "file_path": file_path}


def collect_documents_from_zips(file_contents: List[bytes]) -> List[Dict[str, Any]]:
    """Pulls every supported receipt out of the uploaded ZIP archives."""
    documents = []
    for zip_content in file_contents:
        with zipfile.ZipFile(io.BytesIO(zip_content)) as zf:
            for info in zf.infolist():
                if info.is_dir() or info.filename.startswith('__MACOSX'):
                    continue
                ext = os.path.splitext(info.filename)[1].lower()
                if ext in config.ZIP_MEMBER_MIME_TYPES:
                    documents.append({
                        'path': info.filename,
                        'data': zf.read(info.filename),
                        'type': config.ZIP_MEMBER_MIME_TYPES[ext]
                    })
    return documents


def build_report_dataframe(all_results: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per receipt, columns in config.FIELDS order."""
    rows = []
    for result in all_results:
        if not result or 'file_path' not in result:
            continue
        folder_name = os.path.basename(os.path.dirname(result['file_path'])) or "root"
        row = {'folder_name': folder_name, 'filepath': os.path.basename(result['file_path'])}
        if "error" in result:
            row['error'] = result['error']
        row.update(result.get('record', {}))
        rows.append(row)

    df = pd.DataFrame(rows)
    base_cols = ['folder_name', 'filepath']
    field_cols = [field["name"] for field in config.FIELDS if field["name"] in df.columns]
    tail_cols = [col for col in ('rawText', 'error') if col in df.columns]
    return df.reindex(columns=base_cols + field_cols + tail_cols)


async def process_zip_file_and_generate_report(job_id: str, file_contents: List[bytes], file_names: List[str], job_status_dict: Dict):
    """Orchestrates the batch receipt extraction and CSV reporting for one job."""
    job_start_time = time.time()
    try:
        all_files_to_process = collect_documents_from_zips(file_contents)
        total_files = len(all_files_to_process)
        logger.info(f"Job {job_id}: {total_files} receipts found in {len(file_names)} archive(s).")
        job_status_dict.update({"status": "processing", "total_files": total_files, "processed_files": 0, "progress_percentage": 0.0})

        semaphore = asyncio.Semaphore(config.API_CONCURRENCY_LIMIT)

        async def track(coro):
            result = await coro
            job_status_dict["processed_files"] += 1
            job_status_dict["progress_percentage"] = round(100.0 * job_status_dict["processed_files"] / total_files, 2)
            return result

        async with httpx.AsyncClient(verify=config.VERIFY_SSL) as client:
            tasks = [
                track(process_single_document_async(client, semaphore, file_info))
                for file_info in all_files_to_process
            ]
            all_results = await asyncio.gather(*tasks)

        df = build_report_dataframe(all_results)

        os.makedirs(config.OUTPUT_DIR, exist_ok=True)
        persistent_csv_path = os.path.join(config.OUTPUT_DIR, f"donation_extraction_results_{job_id}.csv")
        df.to_csv(persistent_csv_path, index=False, encoding='utf-8')

        job_status_dict.update({
            "status": "completed",
            "output_file_path": persistent_csv_path,
            "end_time": time.time(),
            "processing_time": time.time() - job_start_time,
        })
        logger.info(f"Job {job_id} completed. Report at {persistent_csv_path}")

    except Exception as e:
        logger.critical(f"Critical error in job {job_id}: {e}", exc_info=True)
        job_status_dict.update({"status": "failed", "error_message": str(e), "end_time": time.time()})
