"""Generation backend interface and implementations."""

import hashlib
import json
import logging
import time
from typing import Dict, Optional, Protocol

import requests

from .config import (
    GENERATION_PROVIDER,
    GENERATION_API_BASE,
    GENERATION_API_KEY,
    GENERATION_API_ENDPOINT,
    GENERATION_POLL_INTERVAL_SECONDS,
)
from .errors import (
    ContentPolicyError,
    InvalidUnitError,
    TransientGenerationError,
    UnitGenerationError,
)
from .models import ProductionSettings, UnitSpec

logger = logging.getLogger(__name__)

_DONE_STATES = ("succeeded", "completed", "done")
_FAILED_STATES = ("failed", "error", "canceled", "cancelled")


class GenerationBackend(Protocol):
    """Protocol for generation backends."""

    def generate(
        self, unit: UnitSpec, settings: ProductionSettings, timeout: float
    ) -> Dict:
        """
        Generate the artifact for one unit.

        Returns:
            dict with keys: "url" (str), "duration" (float, optional),
            "credits" (int, optional), "raw" (dict)

        Raises:
            UnitGenerationError (or a subclass) on failure.
        """
        ...


def unit_hash(unit: UnitSpec, settings: ProductionSettings) -> str:
    """Deterministic SHA256 hash of a unit and its settings (first 16 chars)."""
    normalized = json.dumps(
        {"unit": unit.model_dump(mode="json"), "settings": settings.model_dump()},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


class MockGenerationBackend:
    """Mock backend that returns deterministic mock URLs."""

    def generate(
        self, unit: UnitSpec, settings: ProductionSettings, timeout: float
    ) -> Dict:
        """Return a deterministic mock URL based on the unit hash."""
        digest = unit_hash(unit, settings)
        return {
            "url": f"mock://{unit.segment_id}/{digest}.mp4",
            "duration": unit.duration_seconds,
            "raw": {"provider": "mock", "segment_id": unit.segment_id, "hash": digest},
        }


def _extract_url(data: Dict) -> Optional[str]:
    result = data.get("result")
    if isinstance(result, dict):
        for key in ("video_url", "url"):
            if result.get(key):
                return result[key]
    if isinstance(data.get("data"), list) and data["data"]:
        first = data["data"][0]
        if isinstance(first, dict) and first.get("url"):
            return first["url"]
    for key in ("video_url", "output_url", "url"):
        if data.get(key):
            return data[key]
    return None


class HttpGenerationBackend:
    """Video generation over a JSON HTTP API.

    Supports both synchronous responses and async jobs that answer with a
    ``status_url`` to poll.
    """

    def __init__(
        self,
        api_base: str = GENERATION_API_BASE,
        api_key: str = GENERATION_API_KEY,
        api_endpoint: str = GENERATION_API_ENDPOINT,
        poll_interval: float = GENERATION_POLL_INTERVAL_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.api_endpoint = api_endpoint
        self.poll_interval = poll_interval
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        body = response.text[:200]
        if status == 429 or status >= 500:
            raise TransientGenerationError(f"HTTP {status}: {body}")
        code = ""
        try:
            code = str(response.json().get("code", ""))
        except ValueError:
            pass
        if status == 451 or code == "content_policy":
            raise ContentPolicyError(f"Content policy rejection: {body}")
        if status in (400, 422):
            raise InvalidUnitError(f"HTTP {status}: {body}")
        raise UnitGenerationError(f"HTTP {status}: {body}")

    def _request(self, method: str, url: str, timeout: float, **kwargs) -> Dict:
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=timeout, **kwargs
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            raise TransientGenerationError(f"{url} → {str(e)[:200]}") from e
        except requests.exceptions.RequestException as e:
            raise UnitGenerationError(f"{url} → {str(e)[:200]}") from e

        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise TransientGenerationError(
                f"Malformed response from {url}: {response.text[:200]}"
            ) from e

    def _poll(self, status_url: str, deadline: float) -> Dict:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransientGenerationError(
                    f"Timed out waiting for generation job at {status_url}"
                )
            data = self._request("GET", status_url, timeout=remaining)
            status = str(data.get("status", "")).lower()
            if status in _DONE_STATES:
                return data
            if status in _FAILED_STATES:
                message = data.get("error") or f"Generation job {status}"
                if data.get("code") == "content_policy":
                    raise ContentPolicyError(message)
                raise UnitGenerationError(message)
            time.sleep(min(self.poll_interval, max(remaining, 0)))

    def generate(
        self, unit: UnitSpec, settings: ProductionSettings, timeout: float
    ) -> Dict:
        """Call the generation API for one unit."""
        if not self.api_key:
            raise UnitGenerationError(
                "GENERATION_API_KEY is required for the http provider"
            )

        deadline = time.monotonic() + timeout
        payload = {
            "prompt": unit.prompt,
            "title": unit.title,
            "duration_seconds": unit.duration_seconds,
            "reference_id": unit.segment_id,
            "settings": settings.model_dump(exclude_none=True),
        }
        url = f"{self.api_base}{self.api_endpoint}"
        logger.debug(f"POST {url} for {unit.segment_id}")
        data = self._request("POST", url, timeout=timeout, json=payload)

        if "status_url" in data and not _extract_url(data):
            logger.info(
                f"Generation for {unit.segment_id} queued as "
                f"{data.get('request_id', '?')}, polling {data['status_url']}"
            )
            data = self._poll(data["status_url"], deadline)

        url = _extract_url(data)
        if not url:
            raise UnitGenerationError(f"Could not find URL in response: {data}")

        result = data.get("result") if isinstance(data.get("result"), dict) else {}
        duration = data.get("duration") or result.get("duration")
        return {
            "url": url,
            "duration": duration,
            "credits": data.get("credits_used"),
            "raw": data,
        }


def get_backend() -> GenerationBackend:
    """Get the configured generation backend."""
    if GENERATION_PROVIDER == "http":
        return HttpGenerationBackend()
    return MockGenerationBackend()
