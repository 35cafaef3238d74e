# app/services/image_service.py
"""
Image loading and receipt OCR using Google Cloud Vision.

Goals:
- Robust initialization from either JSON string or file path (no accidental secrets in logs).
- Run blocking Google client calls in a threadpool to avoid blocking the event loop.
- Use httpx.AsyncClient for downloads (async).
- OCR is context for the scan model, never required: when Vision is unavailable or
  fails, `describe_image` returns an empty context instead of raising.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.cloud import vision
from google.oauth2 import service_account

from app.config.settings import settings
from app.services.errors import SuggestionServiceError

logger = logging.getLogger(__name__)

_LABEL_CONF_THRESHOLD = 0.65
_DOWNLOAD_TIMEOUT = 20.0

_MAGIC_MIME = (
    (b"\x89PNG", "image/png"),
    (b"\xff\xd8", "image/jpeg"),
    (b"GIF8", "image/gif"),
    (b"RIFF", "image/webp"),
)


def sniff_mime(image_bytes: bytes, default: str = "image/jpeg") -> str:
    for magic, mime in _MAGIC_MIME:
        if image_bytes.startswith(magic):
            return mime
    return default


class ImageService:
    def __init__(self, client: Optional[Any] = None) -> None:
        """
        Expected credential sources (in order):
        1) GOOGLE_APPLICATION_CREDENTIALS containing a **JSON string** (not a path)
        2) GOOGLE_APPLICATION_CREDENTIALS_FILE containing a path to a JSON file
        3) Default environment (ADC), only when GOOGLE_APPLICATION_CREDENTIALS is set
        """
        self.client = client
        self._init_diagnostics: Dict[str, Any] = {}
        if self.client is None:
            self._initialize_vision_client()

    def _initialize_vision_client(self) -> None:
        creds_value = settings.google_application_credentials
        creds_file = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_FILE")

        if creds_value and creds_value.lstrip().startswith("{"):
            try:
                creds = service_account.Credentials.from_service_account_info(
                    json.loads(creds_value)
                )
                self.client = vision.ImageAnnotatorClient(credentials=creds)
                self._init_diagnostics["method"] = "from_env_json"
                logger.info("ImageService: initialized Vision client from JSON env var.")
                return
            except Exception as exc:
                self._init_diagnostics["env_json_error"] = str(exc)
                logger.debug("ImageService: failed to init from JSON env var: %s", exc)

        if creds_file and os.path.exists(creds_file):
            try:
                creds = service_account.Credentials.from_service_account_file(creds_file)
                self.client = vision.ImageAnnotatorClient(credentials=creds)
                self._init_diagnostics["method"] = "from_file_path"
                logger.info("ImageService: initialized Vision client from credentials file.")
                return
            except Exception as exc:
                self._init_diagnostics["file_path_error"] = str(exc)
                logger.debug("ImageService: failed to init from file path: %s", exc)

        if creds_value:
            try:
                self.client = vision.ImageAnnotatorClient()
                self._init_diagnostics["method"] = "default_adc"
                logger.info("ImageService: initialized Vision client via ADC.")
                return
            except Exception as exc:
                self._init_diagnostics["adc_error"] = str(exc)
                logger.exception("ImageService: ADC initialization failed: %s", exc)

        self.client = None
        logger.warning(
            "ImageService: Vision client not available; OCR context disabled. init_diag=%s",
            self._init_diagnostics,
        )

    # -----------------------
    # Loading
    # -----------------------
    def decode_base64(self, image_base64: str) -> Tuple[bytes, str]:
        if not image_base64:
            raise SuggestionServiceError("No image data to analyse.")
        payload = image_base64
        declared_mime = None
        # accept data URLs as well as bare base64
        if payload.startswith("data:") and "," in payload:
            header, payload = payload.split(",", 1)
            declared_mime = header[5:].split(";")[0] or None
        try:
            image_bytes = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            logger.warning("Failed to decode base64 image: %s", exc)
            raise SuggestionServiceError("Image data could not be decoded.") from exc
        if not image_bytes:
            raise SuggestionServiceError("No image data to analyse.")
        return image_bytes, declared_mime or sniff_mime(image_bytes)

    async def download(self, image_url: str) -> Tuple[bytes, str]:
        if not image_url:
            raise SuggestionServiceError("No image URL given.")
        try:
            async with httpx.AsyncClient(timeout=_DOWNLOAD_TIMEOUT) as client:
                resp = await client.get(image_url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.exception("Failed to download image from URL %s: %s", image_url, exc)
            raise SuggestionServiceError("Image could not be downloaded.") from exc
        image_bytes = resp.content
        content_type = (resp.headers.get("content-type") or "").split(";")[0].strip()
        mime = content_type if content_type.startswith("image/") else sniff_mime(image_bytes)
        return image_bytes, mime

    # -----------------------
    # OCR
    # -----------------------
    async def describe_image(self, image_bytes: bytes) -> Dict[str, Any]:
        """
        Return {"text": str, "labels": [str], "diagnostics": {...}} for the scan prompt.
        """
        diag: Dict[str, Any] = {"bytes": len(image_bytes or b"")}
        if not image_bytes or self.client is None:
            diag["vision_client"] = "unavailable" if self.client is None else "ok"
            return {"text": "", "labels": [], "diagnostics": diag}

        def sync_detect():
            image = vision.Image(content=image_bytes)
            text_resp = self.client.document_text_detection(image=image)
            label_resp = self.client.label_detection(image=image)
            return text_resp, label_resp

        try:
            text_resp, label_resp = await asyncio.to_thread(sync_detect)
        except (GoogleAPICallError, RetryError) as gexc:
            logger.exception("Google Vision API error: %s", gexc)
            diag["vision_api_error"] = str(gexc)
            return {"text": "", "labels": [], "diagnostics": diag}

        full_text = getattr(text_resp, "full_text_annotation", None)
        text = getattr(full_text, "text", "") or ""

        labels: List[str] = []
        for label in getattr(label_resp, "label_annotations", []) or []:
            score = float(getattr(label, "score", 0.0) or 0.0)
            desc = getattr(label, "description", "") or ""
            if score >= _LABEL_CONF_THRESHOLD and desc:
                labels.append(desc.lower())

        diag["text_chars"] = len(text)
        diag["labels_count"] = len(labels)
        logger.debug("ImageService: OCR %d chars, labels=%s", len(text), labels[:10])
        return {"text": text, "labels": labels, "diagnostics": diag}
