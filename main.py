# main.py

import logging
import uuid
import time
import os
from typing import List, Dict, Optional

import httpx
from fastapi import FastAPI, UploadFile, File, HTTPException, BackgroundTasks, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware

import config
import utils
import processing
from exceptions import ExtractionError
from schemas import ExtractRawTextInput, ExtractDetailsFromTextInput, ScanResult

utils.configure_logging()
logger = logging.getLogger(__name__)
os.makedirs(config.OUTPUT_DIR, exist_ok=True)

app = FastAPI(
    title="Donation Receipt Extraction API",
    description="Reads payment screenshots (GPay, PhonePe, Paytm, bank transfers) into structured donation records.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

processed_jobs: Dict[str, Dict] = {}


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError):
    logger.warning(f"Extraction failed for {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(httpx.HTTPError)
async def upstream_error_handler(request: Request, exc: httpx.HTTPError):
    logger.error(f"Model service error for {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": f"The AI service is unavailable: {exc}"})


@app.post("/extract/raw-text")
async def extract_raw_text(payload: ExtractRawTextInput):
    """OCR one or more data-URI documents into raw text."""
    async with httpx.AsyncClient(verify=config.VERIFY_SSL) as client:
        result = await processing.extract_raw_text(client, payload.photo_data_uris)
    return result.model_dump(by_alias=True)


@app.post("/extract/details")
async def extract_details_from_text(payload: ExtractDetailsFromTextInput):
    """Structured donation fields from already-extracted receipt text."""
    async with httpx.AsyncClient(verify=config.VERIFY_SSL) as client:
        details = await processing.extract_details_from_text(client, payload.raw_text)
    return details.to_record()


@app.post("/extract/donation-details")
async def extract_donation_details(payload: ExtractRawTextInput):
    """OCR followed by field extraction; the response carries the raw text too."""
    async with httpx.AsyncClient(verify=config.VERIFY_SSL) as client:
        details = await processing.extract_donation_details(client, payload.photo_data_uris)
    return details.to_record()


@app.post("/scan-proof", response_model=ScanResult, response_model_exclude_none=True)
async def scan_proof(proofFile: Optional[UploadFile] = File(None)):
    """Scans an uploaded payment screenshot; failures come back in the envelope."""
    if proofFile is None:
        return ScanResult(success=False, error="No file was provided for scanning.")

    content = await proofFile.read()
    data_uri = utils.to_data_uri(content, proofFile.content_type or "application/octet-stream")
    try:
        async with httpx.AsyncClient(verify=config.VERIFY_SSL) as client:
            details = await processing.scan_proof(client, data_uri)
    except (ExtractionError, httpx.HTTPError) as e:
        logger.warning(f"Scan of {proofFile.filename} failed: {e}")
        return ScanResult(success=False, error=str(e))
    except Exception as e:
        logger.error(f"Unexpected error scanning {proofFile.filename}: {e}", exc_info=True)
        return ScanResult(success=False, error=str(e) or "An unknown error occurred")
    return ScanResult(success=True, details=details.to_record())


@app.post("/upload")
async def upload_files_for_processing(
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...)
):
    """Accepts ZIP files of receipts and starts the batch extraction in the background."""
    job_id = str(uuid.uuid4())
    logger.info(f"Received new job with ID: {job_id}")

    file_contents = []
    file_names = []
    for file in files:
        if not file.filename or not file.filename.lower().endswith('.zip'):
            raise HTTPException(status_code=400, detail=f"Invalid file type: {file.filename}. Only .zip files are accepted.")
        file_contents.append(await file.read())
        file_names.append(file.filename)

    processed_jobs[job_id] = {
        "job_id": job_id, "status": "queued", "start_time": time.time(),
        "input_files": file_names, "total_files": 0, "processed_files": 0,
        "progress_percentage": 0.0,
    }

    background_tasks.add_task(
        processing.process_zip_file_and_generate_report,
        job_id,
        file_contents,
        file_names,
        processed_jobs[job_id]
    )

    return {
        "message": "Job successfully queued for async processing.",
        "job_id": job_id,
        "status_endpoint": f"/status/{job_id}"
    }


@app.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """Returns the current status of a processing job."""
    job = processed_jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found.")
    return job


@app.get("/download/{job_id}")
async def download_result_file(job_id: str):
    """Allows downloading of the generated CSV report for a completed job."""
    job = processed_jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found.")
    if job.get("status") != "completed":
        raise HTTPException(status_code=400, detail=f"Job is not complete. Current status: {job.get('status')}")

    output_path = job.get("output_file_path")
    if not output_path or not os.path.exists(output_path):
        logger.error(f"File not found for job {job_id} at path: {output_path}")
        raise HTTPException(status_code=404, detail="Output file not found on server.")

    return FileResponse(
        path=output_path,
        filename=os.path.basename(output_path),
        media_type="text/csv"
    )


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint for health checks."""
    return {"message": "Donation Receipt Extraction API is running."}
