"""
API Client for the Sora 2 video endpoints

Provides:
- Text-to-video, image-to-video and remix submission
- Status lookup and listing of recent videos
- Artifact download to disk

Features:
- Connection pooling for better performance
- Image input from URL, base64 data URI or local file
- HTTP status codes mapped to typed errors

All methods are blocking; the batch engine runs them in worker threads.
"""
import base64
import logging
import mimetypes
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from sora_batch.utils.errors import (
    AccessDeniedError,
    APIError,
    AuthenticationError,
    DownloadError,
    NotFoundError,
    RateLimitError,
)
from sora_batch.utils.settings import DEFAULT_API_BASE

logger = logging.getLogger(__name__)

# Global session for connection pooling
_http_session: Optional[requests.Session] = None

# (connect, read) timeouts in seconds
REQUEST_TIMEOUT = (10, 60)
DOWNLOAD_TIMEOUT = (10, 300)

COMPLETED_STATUSES = ("completed", "succeeded")
FAILED_STATUSES = ("failed", "cancelled")
PENDING_STATUSES = ("queued", "in_progress", "running", "preprocessing", "processing")

SUPPORTED_IMAGE_TYPES = {
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

_DATA_URI_PATTERN = re.compile(r"^data:(image/\w+);base64,(.+)$", re.DOTALL)


def get_http_session() -> requests.Session:
    """
    Get or create global HTTP session with connection pooling

    Connection pooling improves performance by reusing TCP connections
    """
    global _http_session

    if _http_session is None:
        _http_session = requests.Session()

        adapter = requests.adapters.HTTPAdapter(
            pool_connections=10,  # Number of connection pools
            pool_maxsize=20,      # Connections per pool
            max_retries=0         # Retries are handled by the batch engine
        )
        _http_session.mount('http://', adapter)
        _http_session.mount('https://', adapter)

        logger.debug("HTTP session with connection pooling initialized")

    return _http_session


@dataclass
class VideoStatusResponse:
    """Video object as returned by the API"""
    id: str
    status: str
    model: Optional[str] = None
    size: Optional[str] = None
    progress: Optional[int] = None
    video_url: Optional[str] = None
    duration: Optional[float] = None
    n_seconds: Optional[float] = None
    failure_reason: Optional[str] = None
    error: Optional[str] = None
    created_at: Any = None
    finished_at: Any = None
    generation_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoStatusResponse":
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message") or str(error)

        return cls(
            id=data.get("id", ""),
            status=data.get("status", ""),
            model=data.get("model"),
            size=data.get("size"),
            progress=data.get("progress"),
            video_url=data.get("video_url"),
            duration=data.get("duration"),
            n_seconds=data.get("n_seconds"),
            failure_reason=data.get("failure_reason"),
            error=error,
            created_at=data.get("created_at"),
            finished_at=data.get("finished_at"),
            generation_ids=[g["id"] for g in data.get("generations") or [] if g.get("id")],
        )

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    @property
    def is_failed(self) -> bool:
        return self.status in FAILED_STATUSES

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def download_id(self) -> str:
        """ID for the content endpoint: first generation, else the video itself"""
        return self.generation_ids[0] if self.generation_ids else self.id


def _error_message(response: requests.Response) -> str:
    """
    Build an error message that always carries the HTTP status

    Retry patterns such as "503" match against this text.
    """
    detail = response.text
    try:
        payload = response.json()
        message = payload.get("error", {}).get("message")
        if message:
            detail = message
    except (ValueError, AttributeError):
        pass
    return f"API error: {response.status_code} - {detail}"


def raise_for_api_error(response: requests.Response, not_found_message: Optional[str] = None) -> None:
    """
    Raise a typed error for a non-success response

    Args:
        response: HTTP response
        not_found_message: Message for 404 responses (generic message if None)

    Raises:
        APIError: Or one of its subclasses, depending on the status code
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    if status == 401:
        raise AuthenticationError(
            "Authentication failed. Please check your OPENAI_API_KEY.", status_code=status
        )
    if status == 403:
        raise AccessDeniedError(
            "Access denied. Sora 2 requires Tier 2+ API access ($10+ credit purchase).",
            status_code=status,
        )
    if status == 404 and not_found_message:
        raise NotFoundError(not_found_message, status_code=status)
    if status == 429:
        raise RateLimitError("Rate limit exceeded (429). Please wait and try again.", status_code=status)

    message = _error_message(response)
    if status == 404:
        raise NotFoundError(message, status_code=status)
    raise APIError(message, status_code=status)


def load_image(input_reference: str) -> Tuple[str, bytes, str]:
    """
    Load an input image for image-to-video

    Args:
        input_reference: http(s) URL, data:image/...;base64 URI or local file path

    Returns:
        (filename, content, mime type)

    Raises:
        FileNotFoundError: If a local file doesn't exist
        ValueError: If a data URI is malformed
        DownloadError: If a URL cannot be fetched
    """
    if input_reference.startswith(("http://", "https://")):
        logger.debug(f"Downloading image from URL: {input_reference}")
        response = get_http_session().get(input_reference, timeout=REQUEST_TIMEOUT)
        if not response.ok:
            raise DownloadError(f"Failed to download image: {response.status_code} {response.reason}")
        mime_type = response.headers.get("content-type", "image/jpeg")
        filename = Path(urlparse(input_reference).path).name or "image.jpg"
        return filename, response.content, mime_type

    if input_reference.startswith("data:image/"):
        match = _DATA_URI_PATTERN.match(input_reference)
        if not match:
            raise ValueError("Invalid base64 data URI format")
        mime_type = match.group(1)
        extension = mime_type.split("/")[1] or "jpg"
        return f"image.{extension}", base64.b64decode(match.group(2)), mime_type

    path = Path(input_reference).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Image file not found: {input_reference}")
    mime_type = SUPPORTED_IMAGE_TYPES.get(path.suffix.lower()) or mimetypes.guess_type(path.name)[0] or "image/jpeg"
    return path.name, path.read_bytes(), mime_type


class VideoAPIClient:
    """
    Client for the video generation API

    Example:
        client = VideoAPIClient(api_key="sk-...")
        video = client.create_video("A cat playing piano", "sora-2", "1280x720", 8)
        status = client.get_video(video.id)
    """

    def __init__(
        self,
        api_key: str,
        api_base: str = DEFAULT_API_BASE,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client

        Args:
            api_key: Bearer token for the API
            api_base: Base URL (e.g., https://api.openai.com/v1)
            session: HTTP session (shared pooled session if None)
        """
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.session = session or get_http_session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def create_video(
        self,
        prompt: str,
        model: str,
        size: str,
        seconds: int,
        input_reference: Optional[str] = None,
    ) -> VideoStatusResponse:
        """
        Submit a text-to-video or image-to-video job

        Image jobs are sent as multipart/form-data, text jobs as JSON.

        Returns:
            The newly created video object
        """
        fields = {
            "prompt": prompt,
            "model": model,
            "size": size,
            "seconds": str(seconds),
        }

        if input_reference:
            filename, content, mime_type = load_image(input_reference)
            logger.debug(f"Uploading image: {filename} ({mime_type}, {len(content)} bytes)")
            response = self.session.post(
                f"{self.api_base}/videos",
                headers=self._headers,
                data=fields,
                files={"input_reference": (filename, content, mime_type)},
                timeout=REQUEST_TIMEOUT,
            )
        else:
            response = self.session.post(
                f"{self.api_base}/videos",
                headers=self._headers,
                json=fields,
                timeout=REQUEST_TIMEOUT,
            )

        raise_for_api_error(response)
        video = VideoStatusResponse.from_dict(response.json())
        logger.debug(f"Video generation started: {video.id}")
        return video

    def remix_video(self, video_id: str, prompt: str) -> VideoStatusResponse:
        """Submit a remix of a previously generated video"""
        response = self.session.post(
            f"{self.api_base}/videos/{video_id}/remix",
            headers=self._headers,
            json={"prompt": prompt},
            timeout=REQUEST_TIMEOUT,
        )
        raise_for_api_error(response, not_found_message=f"Video not found: {video_id}")
        video = VideoStatusResponse.from_dict(response.json())
        logger.debug(f"Remix started: {video.id} (source {video_id})")
        return video

    def get_video(self, video_id: str) -> VideoStatusResponse:
        """Get the current status of a video"""
        response = self.session.get(
            f"{self.api_base}/videos/{video_id}",
            headers=self._headers,
            timeout=REQUEST_TIMEOUT,
        )
        raise_for_api_error(response, not_found_message=f"Video not found: {video_id}")
        return VideoStatusResponse.from_dict(response.json())

    def list_videos(self, limit: int = 20) -> List[VideoStatusResponse]:
        """List recent videos, newest first"""
        response = self.session.get(
            f"{self.api_base}/videos",
            headers=self._headers,
            params={"limit": limit},
            timeout=REQUEST_TIMEOUT,
        )
        raise_for_api_error(response)
        return [VideoStatusResponse.from_dict(item) for item in response.json().get("data", [])]

    def download_content(self, video_id: str, destination: Path) -> Path:
        """Download a video from the API content endpoint"""
        response = self.session.get(
            f"{self.api_base}/videos/{video_id}/content",
            headers=self._headers,
            timeout=DOWNLOAD_TIMEOUT,
        )
        if not response.ok:
            raise DownloadError(f"Failed to download video: {response.status_code} - {response.text}")
        return self._save(response.content, destination)

    def download_url(self, url: str, destination: Path) -> Path:
        """Download a video from a direct URL"""
        response = self.session.get(url, timeout=DOWNLOAD_TIMEOUT)
        if not response.ok:
            raise DownloadError(f"Failed to download video: {response.status_code}")
        return self._save(response.content, destination)

    @staticmethod
    def _save(content: bytes, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(content)
        logger.debug(f"Video saved to: {destination}")
        return destination
