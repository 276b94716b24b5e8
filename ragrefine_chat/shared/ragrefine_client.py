"""
RAGRefine Client — REST wrapper for the RAGRefine analytics service.

Covers tool execution, dataset listing/info/sampling/upload and result
lookups. Calls are synchronous `requests`; async callers run them through
asyncio.to_thread.
"""

import os
import json
from dataclasses import dataclass, asdict
from typing import Optional
from urllib.parse import quote

import requests

from ragrefine_chat import config


DATASET_EXTENSIONS = (".csv", ".xlsx", ".xls", ".tsv", ".json", ".parquet")

DATASET_MIME_TYPES = {
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/tab-separated-values",
    "application/json",
    "application/parquet",
}


class RAGRefineAPIError(Exception):
    """Non-2xx or unreadable answer from the RAGRefine service."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class DatasetUploadResult:
    success: bool
    filename: str
    path: str
    size: int
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if data["error"] is None:
            data.pop("error")
        return data


def encode_segment(value) -> str:
    """URL-encode a single path segment (slashes included)."""
    return quote(str(value), safe="")


class RAGRefineClient:
    """Talks to the RAGRefine REST API."""

    def __init__(self, base_url: str = None, timeout: float = None):
        self.base_url = (base_url or config.RAGREFINE_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.RAGREFINE_TIMEOUT
        self.headers = {"Content-Type": "application/json"}

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def request(self, method: str, path: str, params: dict = None, json_body: dict = None) -> tuple:
        """
        Send one request and return (status_code, body_text).

        Non-2xx answers are returned, not raised; transport failures raise
        requests.RequestException.
        """
        kwargs = {"headers": self.headers, "params": params, "timeout": self.timeout}
        if json_body is not None:
            kwargs["data"] = json.dumps(json_body)
        response = requests.request(method, self.url(path), **kwargs)
        return response.status_code, response.text

    # ---------------------------------------------------------
    # Dataset helpers (raise RAGRefineAPIError on non-2xx)
    # ---------------------------------------------------------
    def _get_json(self, path: str, params: dict = None, fallback: str = "") -> dict:
        status, text = self.request("GET", path, params=params)
        if not 200 <= status < 300:
            raise RAGRefineAPIError(_error_message(text, fallback or f"Request failed: {status}"), status)
        return json.loads(text)

    def list_datasets(self) -> list:
        try:
            result = self._get_json("/api/datasets")
        except RAGRefineAPIError as e:
            print(f"  [RAGRefine] Error listing datasets: {e}")
            raise RAGRefineAPIError(f"Failed to list datasets: {e.status_code}", e.status_code) from e
        return result.get("datasets") or []

    def get_dataset_info(self, dataset_path: str) -> dict:
        return self._get_json(
            f"/api/datasets/{encode_segment(dataset_path)}/info",
            fallback="Failed to get dataset info",
        )

    def read_dataset_sample(self, dataset_path: str, n_rows: int = 5) -> dict:
        return self._get_json(
            f"/api/datasets/{encode_segment(dataset_path)}/sample",
            params={"n_rows": n_rows},
            fallback="Failed to read dataset sample",
        )

    def upload_dataset(self, filename: str, content: bytes, content_type: str = None) -> dict:
        """
        Multipart upload to /api/datasets.

        Raises RAGRefineAPIError on a non-2xx status or a body that is not a
        JSON object; transport errors propagate as requests.RequestException.
        """
        files = {"file": (filename, content, content_type or "application/octet-stream")}
        response = requests.post(self.url("/api/datasets"), files=files, timeout=self.timeout)
        if not response.ok:
            try:
                response.json()
                fallback = f"Failed to upload: {response.status_code}"
            except ValueError:
                fallback = f"HTTP {response.status_code}"
            raise RAGRefineAPIError(_error_message(response.text, fallback), response.status_code)

        try:
            result = response.json()
        except (ValueError, RecursionError) as e:
            raise RAGRefineAPIError(f"Invalid upload response: {e}") from e
        if not isinstance(result, dict):
            raise RAGRefineAPIError(f"Invalid upload response: expected an object, got {type(result).__name__}")
        return result


def _error_message(body: str, fallback: str) -> str:
    """Prefer the service's {"error": ...} field, else the fallback text."""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return fallback
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return fallback


def upload_dataset_to_ragrefine(
    filename: str,
    content: bytes,
    content_type: str = None,
    client: RAGRefineClient = None,
) -> DatasetUploadResult:
    """
    Upload a dataset file and report the outcome without raising.

    Falls back to the local filename/size when the service omits them.
    """
    client = client or RAGRefineClient()
    size = len(content)
    try:
        result = client.upload_dataset(filename, content, content_type)
    except (RAGRefineAPIError, requests.RequestException) as e:
        print(f"  [RAGRefine] Upload failed for {filename}: {e}")
        return DatasetUploadResult(success=False, filename=filename, path="", size=size, error=str(e))

    print(f"  [RAGRefine] Uploaded dataset {filename} -> {result.get('path', '')}")
    return DatasetUploadResult(
        success=True,
        filename=result.get("filename") or filename,
        path=result.get("path") or "",
        size=result.get("size") or size,
    )


def is_dataset_file(filename: str) -> bool:
    return os.path.splitext((filename or "").lower())[1] in DATASET_EXTENSIONS


def is_dataset_mime_type(mime_type: str) -> bool:
    return (mime_type or "").lower() in DATASET_MIME_TYPES
