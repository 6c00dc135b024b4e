"""HTTP client for the generation service's streaming endpoints.

Wraps ``httpx.AsyncClient`` with:
- base URL construction and optional Bearer token auth
- separate connect / read timeouts (streams stay open for minutes)
- status check before streaming (non-2xx → :class:`GenerationServiceError`)
- transport and body-decoding failures mapped to :class:`StreamTransportError`
- request timing logs
- connection-pool lifecycle tied to FastAPI lifespan

Streams are not retried: the upstream request is not idempotent (it
persists a study guide or a grading result), so retry policy belongs to
the caller.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from config.settings import get_settings
from errors.exceptions import GenerationServiceError, StreamTransportError
from models.stream_outcome import StreamOutcome
from services.stream_consumer import EventHandlers, consume_stream

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
_client: GenerationClient | None = None

STUDY_GUIDE_PATH = "/api/generate-study-guide-stream"
CUSTOM_GUIDE_PATH = "/api/generate-custom-guide"
GRADE_EXAM_PATH = "/api/grade-exam-stream"

# (filename, content, content_type)
UploadFile = tuple[str, bytes, str]


def _error_detail(response: httpx.Response) -> str:
    """Pull a human-readable reason out of a failed response body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    if response.text:
        return response.text[:500]
    return f"HTTP {response.status_code}"


class GenerationClient:
    """Async client that opens generation streams and consumes them."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = get_settings()
        self._base_url = settings.generation_base_url.rstrip("/")
        self._timeout = httpx.Timeout(
            settings.generation_read_timeout,
            connect=settings.generation_connect_timeout,
        )
        self._access_token = settings.generation_access_token
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Create the underlying ``httpx.AsyncClient`` connection pool."""
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._auth_headers(),
            transport=self._transport,
        )
        logger.info("GenerationClient started, base_url=%s", self._base_url)

    async def close(self) -> None:
        """Gracefully close the connection pool."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.info("GenerationClient closed")

    # -- public API ----------------------------------------------------------

    async def stream_study_guide(
        self,
        payload: dict[str, Any],
        handlers: EventHandlers | None = None,
    ) -> StreamOutcome:
        """Generate a study guide from uploaded source files."""
        return await self.open_stream(STUDY_GUIDE_PATH, handlers, json_body=payload)

    async def stream_custom_guide(
        self,
        payload: dict[str, Any],
        handlers: EventHandlers | None = None,
    ) -> StreamOutcome:
        """Generate custom-guide sections; each arrives as a ``section`` event."""
        return await self.open_stream(CUSTOM_GUIDE_PATH, handlers, json_body=payload)

    async def stream_grade_exam(
        self,
        student_exams: list[UploadFile],
        handlers: EventHandlers | None = None,
        *,
        mark_scheme: UploadFile | None = None,
        additional_comments: str | None = None,
    ) -> StreamOutcome:
        """Grade a student exam (optionally against a mark scheme).

        Sent as multipart form data: one ``studentExam`` part per file, an
        optional ``markScheme`` part and optional ``additionalComments``.
        """
        if not student_exams:
            raise ValueError("At least one student exam file is required")

        files: list[tuple[str, UploadFile]] = []
        if mark_scheme is not None:
            files.append(("markScheme", mark_scheme))
        files.extend(("studentExam", exam) for exam in student_exams)

        data: dict[str, str] = {}
        if additional_comments and additional_comments.strip():
            data["additionalComments"] = additional_comments.strip()

        return await self.open_stream(GRADE_EXAM_PATH, handlers, data=data, files=files)

    async def open_stream(
        self,
        path: str,
        handlers: EventHandlers | None = None,
        *,
        json_body: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        files: list[tuple[str, UploadFile]] | None = None,
    ) -> StreamOutcome:
        """POST to *path* and consume the response body as a generation stream.

        Raises :class:`GenerationServiceError` when the service rejects the
        request with any non-2xx status, and :class:`StreamTransportError` when
        the connection or body decoding fails at any point.  Everything that
        happens once the stream is open is reported through the returned
        outcome.
        """
        client = self._ensure_started()
        t0 = time.monotonic()
        try:
            async with client.stream(
                "POST", path, json=json_body, data=data, files=files,
            ) as response:
                if not response.is_success:
                    await response.aread()
                    detail = _error_detail(response)
                    logger.warning(
                        "POST %s → %d before streaming: %s",
                        path, response.status_code, detail,
                    )
                    raise GenerationServiceError(
                        status_code=response.status_code,
                        detail=detail,
                        url=str(response.url),
                    )
                outcome = await consume_stream(
                    response.aiter_bytes(), handlers, started_at=t0,
                )
        except httpx.RequestError as exc:
            elapsed_ms = (time.monotonic() - t0) * 1000
            logger.warning("POST %s → request failed (%.0fms): %s", path, elapsed_ms, exc)
            raise StreamTransportError(path, str(exc) or type(exc).__name__) from exc

        logger.info(
            "POST %s → %s (%.0fms, %d events)",
            path, outcome.status.value, outcome.elapsed_seconds * 1000, outcome.event_count,
        )
        return outcome

    # -- internals -----------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def _ensure_started(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("GenerationClient not started; call await client.start() first")
        return self._http


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------

def get_generation_client() -> GenerationClient:
    """Return the module-level GenerationClient singleton (create if needed)."""
    global _client
    if _client is None:
        _client = GenerationClient()
    return _client
