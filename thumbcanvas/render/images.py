from __future__ import annotations

import base64
import binascii
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from io import BytesIO
from pathlib import Path
from typing import Callable

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

LOGGER = logging.getLogger(__name__)

ROLE_HOST = "host"
ROLE_GUEST = "guest"
ROLE_BACKGROUND = "background"

STATUS_IDLE = "idle"
STATUS_PENDING = "pending"
STATUS_READY = "ready"
STATUS_FAILED = "failed"

_REQUEST_HEADERS = {
    "User-Agent": "thumbcanvas/0.1",
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
}


class ImageSourceError(RuntimeError):
    pass


def _read_data_uri(source: str) -> bytes:
    header, _, payload = source.partition(",")
    if not payload:
        raise ImageSourceError("data URI has no payload")
    if ";base64" not in header:
        raise ImageSourceError("only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ImageSourceError(f"invalid base64 payload: {exc}") from exc


def _read_url(source: str, timeout: float) -> bytes:
    try:
        response = requests.get(source, headers=_REQUEST_HEADERS, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        raise ImageSourceError(f"download failed: {exc}") from exc
    if response.status_code != 200:
        raise ImageSourceError(f"download failed: HTTP {response.status_code}")
    return response.content


def read_image_bytes(source: str, timeout: float = 30.0) -> bytes:
    text = (source or "").strip()
    if not text:
        raise ImageSourceError("empty image source")
    lowered = text.lower()
    if lowered.startswith("data:"):
        return _read_data_uri(text)
    if lowered.startswith(("http://", "https://")):
        return _read_url(text, timeout)
    path = Path(text[7:] if lowered.startswith("file://") else text)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ImageSourceError(f"cannot read {path}: {exc}") from exc


def decode_image_source(source: str, timeout: float = 30.0) -> Image.Image:
    data = read_image_bytes(source, timeout=timeout)
    try:
        with Image.open(BytesIO(data)) as image:
            return ImageOps.exif_transpose(image).convert("RGBA").copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageSourceError(f"cannot decode image: {exc}") from exc


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs) -> Future:  # type: ignore[override]
        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future


class ImageCache:
    """Per-URL image cache with a desired-URL slot per role.

    A finished load is committed only while some role still wants its URL;
    otherwise it is dropped. Every committed load (decoded or failed) fires
    ``on_change`` exactly once.
    """

    def __init__(
        self,
        loader: Callable[[str], Image.Image] | None = None,
        *,
        executor: Executor | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._loader = loader or decode_image_source
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="thumbcanvas-image")
        self._owns_executor = executor is None
        self._lock = threading.RLock()
        self._wanted: dict[str, str | None] = {}
        self._images: dict[str, Image.Image] = {}
        self._failed: set[str] = set()
        self._pending: dict[str, Future] = {}
        self.on_change = on_change
        self.loads_committed = 0

    def wanted_url(self, role: str) -> str | None:
        with self._lock:
            return self._wanted.get(role)

    def status(self, url: str | None) -> str:
        if not url:
            return STATUS_IDLE
        with self._lock:
            if url in self._images:
                return STATUS_READY
            if url in self._failed:
                return STATUS_FAILED
            if url in self._pending:
                return STATUS_PENDING
        return STATUS_IDLE

    def get(self, url: str | None) -> Image.Image | None:
        if not url:
            return None
        with self._lock:
            return self._images.get(url)

    def request(self, role: str, url: str | None) -> Image.Image | None:
        """Record ``url`` as the desired image for ``role`` and return it if loaded."""
        with self._lock:
            self._wanted[role] = url
            if not url:
                return None
            cached = self._images.get(url)
            if cached is not None:
                return cached
            if url in self._failed or url in self._pending:
                return None
            future = self._executor.submit(self._loader, url)
            self._pending[url] = future
        if future.done():
            # finished on the calling thread; the caller gets the result directly
            self._commit(url, future, notify=False)
            return self.get(url)
        future.add_done_callback(lambda done, key=url: self._commit(key, done))
        return None

    def _commit(self, url: str, future: Future, *, notify: bool = True) -> None:
        with self._lock:
            if self._pending.get(url) is not future:
                return
            del self._pending[url]
            try:
                image = future.result()
            except Exception as exc:
                image = None
                error = exc
            else:
                error = None
            if url not in self._wanted.values():
                LOGGER.debug("discarding stale image load: %s", _short(url))
                return
            if image is None:
                LOGGER.warning("image load failed for %s: %s", _short(url), error)
                self._failed.add(url)
            else:
                self._images[url] = image
            self.loads_committed += 1
            callback = self.on_change if notify else None
        if callback is not None:
            callback()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until pending loads finish. Returns False on timeout."""
        with self._lock:
            pending = dict(self._pending)
        if not pending:
            return True
        done, not_done = wait_futures(list(pending.values()), timeout=timeout)
        for url, future in pending.items():
            if future in done:
                self._commit(url, future)
        return not not_done

    def retry(self, url: str) -> None:
        with self._lock:
            self._failed.discard(url)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)


def _short(url: str) -> str:
    if url.startswith("data:"):
        return url[:32] + "..."
    return url
