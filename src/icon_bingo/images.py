"""Image decoding and bounded, concurrent dimension lookups."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import cairosvg
from PIL import Image, UnidentifiedImageError

from .errors import ImageUnavailableError, LayoutCancelledError
from .models import Icon

logger = logging.getLogger(__name__)

Size = Tuple[int, int]

DEFAULT_TIMEOUT_SEC = 5.0
SVG_RASTER_WIDTH = 512
_POLL_SEC = 0.05


def image_bytes(icon: Icon) -> bytes:
    """Raw bytes for an icon payload (bytes, ``data:`` URI or file path)."""
    data = icon.image_data
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not isinstance(data, str) or not data:
        raise ImageUnavailableError(icon.id, "no image payload")
    if data.startswith("data:"):
        header, sep, payload = data.partition(",")
        if not sep:
            raise ImageUnavailableError(icon.id, "malformed data URI")
        try:
            if ";base64" in header:
                return base64.b64decode(payload, validate=True)
            return payload.encode("utf-8")
        except (binascii.Error, ValueError) as exc:
            raise ImageUnavailableError(icon.id, f"bad base64 payload: {exc}") from exc
    path = Path(data)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ImageUnavailableError(icon.id, f"cannot read {path}: {exc}") from exc


def is_svg(icon: Icon, raw: bytes) -> bool:
    data = icon.image_data
    if isinstance(data, str):
        if data.startswith("data:image/svg+xml"):
            return True
        if not data.startswith("data:") and data.lower().endswith(".svg"):
            return True
    head = raw[:512].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head)


def raster_bytes(icon: Icon) -> bytes:
    """Bytes Pillow can decode; SVG payloads are rasterized to PNG first."""
    raw = image_bytes(icon)
    if not is_svg(icon, raw):
        return raw
    try:
        return cairosvg.svg2png(bytestring=raw, output_width=SVG_RASTER_WIDTH)
    except (ValueError, SyntaxError, OSError) as exc:
        # SyntaxError covers xml.etree ParseError
        raise ImageUnavailableError(icon.id, f"cannot rasterize SVG: {exc}") from exc


def open_image(icon: Icon) -> Image.Image:
    """Decode an icon into a loaded PIL image."""
    raw = raster_bytes(icon)
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageUnavailableError(icon.id, f"cannot decode image: {exc}") from exc
    return img


def read_image_size(icon: Icon) -> Size:
    raw = raster_bytes(icon)
    try:
        with Image.open(io.BytesIO(raw)) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageUnavailableError(icon.id, f"cannot decode image: {exc}") from exc


@dataclass(frozen=True)
class Measurement:
    """Outcome of one lookup.

    ``size`` is None when the dimensions are unknown (timeout or failure);
    ``available`` is False only when the image could not be decoded.
    """

    size: Optional[Size]
    available: bool = True


class ImageMeasurer:
    """Runs a per-icon reader on a thread pool with a bounded wait.

    The default reader looks up native sizes; the renderer reuses the same
    pool and deadline to decode images for the document.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        max_workers: int = 4,
        reader: Callable[[Icon], Any] = read_image_size,
    ):
        self.timeout = timeout
        self.reader = reader
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="icon-measure")

    def __enter__(self) -> "ImageMeasurer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def submit(self, icons: Iterable[Icon]) -> Dict[str, Future]:
        futures: Dict[str, Future] = {}
        for icon in icons:
            if icon.id not in futures:
                futures[icon.id] = self._executor.submit(self.reader, icon)
        return futures

    def _await(self, futures: Dict[str, Future], cancel: Optional[threading.Event]) -> None:
        deadline = time.monotonic() + self.timeout
        pending = set(futures.values())
        while pending:
            if cancel is not None and cancel.is_set():
                for fut in pending:
                    fut.cancel()
                raise LayoutCancelledError("export cancelled while loading images")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            _done, pending = wait(pending, timeout=min(_POLL_SEC, remaining), return_when=FIRST_COMPLETED)

    def fetch(
        self,
        futures: Dict[str, Future],
        cancel: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """Reader results by icon id; None where the reader failed or ran out of time."""
        self._await(futures, cancel)
        results: Dict[str, Any] = {}
        for icon_id, fut in futures.items():
            if not fut.done():
                fut.cancel()
                logger.warning("Loading image %s timed out after %.1fs", icon_id, self.timeout)
                results[icon_id] = None
                continue
            try:
                results[icon_id] = fut.result()
            except ImageUnavailableError as exc:
                logger.warning("%s", exc)
                results[icon_id] = None
        return results

    def collect(
        self,
        futures: Dict[str, Future],
        cancel: Optional[threading.Event] = None,
    ) -> Dict[str, Measurement]:
        """Wait for all lookups, tolerating individual failures and timeouts."""
        self._await(futures, cancel)
        results: Dict[str, Measurement] = {}
        for icon_id, fut in futures.items():
            if not fut.done():
                fut.cancel()
                logger.warning("Image lookup for %s timed out after %.1fs; assuming square", icon_id, self.timeout)
                results[icon_id] = Measurement(size=None)
                continue
            try:
                results[icon_id] = Measurement(size=fut.result())
            except ImageUnavailableError as exc:
                logger.warning("%s", exc)
                results[icon_id] = Measurement(size=None, available=False)
        return results

    def measure(self, icons: Iterable[Icon], cancel: Optional[threading.Event] = None) -> Dict[str, Measurement]:
        return self.collect(self.submit(icons), cancel=cancel)
