"""API tests for the FastAPI routes, with the pipeline mocked."""
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

import config
from exceptions import MissingRequiredFieldsError, NoStructuredOutputError, NoTextExtractedError
from main import app, processed_jobs
from schemas import DonationDetails, RawTextResult

client = TestClient(app)


def test_root_health_check():
    response = client.get("/")
    assert response.status_code == 200
    assert "running" in response.json()["message"]


def test_extract_raw_text_endpoint(png_data_uri):
    with patch("processing.extract_raw_text", new=AsyncMock(return_value=RawTextResult(raw_text="UTR: 1"))) as mock_extract:
        response = client.post("/extract/raw-text", json={"photoDataUris": [png_data_uri]})

    assert response.status_code == 200
    assert response.json() == {"rawText": "UTR: 1"}
    assert mock_extract.await_args.args[1] == [png_data_uri]


def test_extract_raw_text_no_text_is_422(png_data_uri):
    error = NoTextExtractedError("The AI model did not return any text for document 1.")
    with patch("processing.extract_raw_text", new=AsyncMock(side_effect=error)):
        response = client.post("/extract/raw-text", json={"photoDataUris": [png_data_uri]})

    assert response.status_code == 422
    assert response.json()["detail"] == str(error)


def test_extract_details_endpoint_omits_absent_fields():
    details = DonationDetails(amount=500.0, utr_number="123456789012")
    with patch("processing.extract_details_from_text", new=AsyncMock(return_value=details)):
        response = client.post("/extract/details", json={"rawText": "UTR: 123456789012"})

    assert response.status_code == 200
    assert response.json() == {"amount": 500.0, "utrNumber": "123456789012"}


def test_extract_details_no_output_is_422():
    with patch("processing.extract_details_from_text",
               new=AsyncMock(side_effect=NoStructuredOutputError("The AI model did not return any output from the text."))):
        response = client.post("/extract/details", json={"rawText": "text"})

    assert response.status_code == 422


def test_model_service_down_is_502(png_data_uri):
    with patch("processing.extract_donation_details", new=AsyncMock(side_effect=httpx.ConnectError("refused"))):
        response = client.post("/extract/donation-details", json={"photoDataUris": [png_data_uri]})

    assert response.status_code == 502


def test_donation_details_endpoint_includes_raw_text(png_data_uri):
    details = DonationDetails(amount=1500.0, transaction_id="T1", raw_text="Paid to\nX")
    with patch("processing.extract_donation_details", new=AsyncMock(return_value=details)):
        response = client.post("/extract/donation-details", json={"photoDataUris": [png_data_uri]})

    assert response.json() == {"amount": 1500.0, "transactionId": "T1", "rawText": "Paid to\nX"}


def test_scan_proof_success():
    details = DonationDetails(amount=250.0, transaction_id="T9")
    with patch("processing.scan_proof", new=AsyncMock(return_value=details)) as mock_scan:
        response = client.post("/scan-proof", files={"proofFile": ("proof.png", b"\x89PNGdata", "image/png")})

    assert response.status_code == 200
    assert response.json() == {"success": True, "details": {"amount": 250.0, "transactionId": "T9"}}
    assert mock_scan.await_args.args[1].startswith("data:image/png;base64,")


def test_scan_proof_failure_is_reported_in_envelope():
    with patch("processing.scan_proof", new=AsyncMock(side_effect=MissingRequiredFieldsError(["Amount"]))):
        response = client.post("/scan-proof", files={"proofFile": ("proof.png", b"data", "image/png")})

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["error"].startswith("Scan failed: Could not extract required fields (Amount)")


def test_scan_proof_without_file():
    response = client.post("/scan-proof")
    assert response.json() == {"success": False, "error": "No file was provided for scanning."}


def test_upload_rejects_non_zip():
    response = client.post("/upload", files=[("files", ("receipt.png", b"data", "image/png"))])
    assert response.status_code == 400


def test_upload_queues_job():
    with patch("processing.process_zip_file_and_generate_report", new=AsyncMock()) as mock_job:
        response = client.post("/upload", files=[("files", ("batch.zip", b"PK", "application/zip"))])

    assert response.status_code == 200
    job_id = response.json()["job_id"]
    assert processed_jobs[job_id]["input_files"] == ["batch.zip"]
    assert mock_job.await_args.args[0] == job_id

    status = client.get(f"/status/{job_id}")
    assert status.status_code == 200


def test_unknown_job():
    assert client.get("/status/does-not-exist").status_code == 404
    assert client.get("/download/does-not-exist").status_code == 404


def test_download_before_completion():
    processed_jobs["pending-job"] = {"job_id": "pending-job", "status": "processing"}
    response = client.get("/download/pending-job")
    assert response.status_code == 400


def _upstream_returns(response):
    response.request = httpx.Request("POST", config.API_URL)
    return patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=response))


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>proxy error</html>"),
    httpx.Response(200, json={"unexpected": True}),
])
def test_scan_proof_bad_upstream_body_stays_in_envelope(response):
    with _upstream_returns(response), patch("utils.asyncio.sleep", new=AsyncMock()):
        result = client.post("/scan-proof", files={"proofFile": ("proof.png", b"\x89PNGdata", "image/png")})

    assert result.status_code == 200
    assert result.json()["success"] is False
    assert "Unexpected response body" in result.json()["error"]


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>proxy error</html>"),
    httpx.Response(200, json={"unexpected": True}),
])
def test_extract_raw_text_bad_upstream_body_is_502(response, png_data_uri):
    with _upstream_returns(response), patch("utils.asyncio.sleep", new=AsyncMock()):
        result = client.post("/extract/raw-text", json={"photoDataUris": [png_data_uri]})

    assert result.status_code == 502


def test_scan_proof_unexpected_error_stays_in_envelope():
    with patch("processing.scan_proof", new=AsyncMock(side_effect=RuntimeError("boom"))):
        response = client.post("/scan-proof", files={"proofFile": ("proof.png", b"data", "image/png")})

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "boom"}
