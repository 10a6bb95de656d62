"""Media loading for the compositor.

MediaLoader fetches clip images and video frames from URLs or local
paths. Any failure (network, missing file, undecodable media) yields
None so the compositor can substitute the theme background. Loaded
sources are cached per URL; cached sources are read-only, so frames
still render identically in any order.
"""

import io
import logging
from pathlib import Path

import numpy as np
import requests
from moviepy import VideoFileClip
from PIL import Image

logger = logging.getLogger(__name__)


REQUEST_TIMEOUT = 20

_VIDEO_ERRORS = (OSError, ValueError, RuntimeError, IndexError, KeyError)


class MediaLoader:
    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests.Session()
        self._images: dict[str, Image.Image | None] = {}
        self._videos: dict[str, VideoFileClip | None] = {}

    # ── Images ────────────────────────────────────────────────────

    def _read_image(self, url: str) -> Image.Image:
        if url.startswith(("http://", "https://")):
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            img = Image.open(io.BytesIO(response.content))
        else:
            img = Image.open(Path(url))
        img.load()
        return img.convert("RGB")

    def load_image(self, url: str | None) -> Image.Image | None:
        """Load an image as RGB, or None if it can't be loaded."""
        if not url:
            return None
        if url not in self._images:
            try:
                self._images[url] = self._read_image(url)
            except (requests.RequestException, OSError, ValueError) as e:
                logger.warning("Image load failed for %s: %s", url, e)
                self._images[url] = None
        return self._images[url]

    # ── Video ─────────────────────────────────────────────────────

    def _open_video(self, url: str) -> VideoFileClip | None:
        if url not in self._videos:
            try:
                self._videos[url] = VideoFileClip(url, audio=False)
            except _VIDEO_ERRORS as e:
                logger.warning("Video open failed for %s: %s", url, e)
                self._videos[url] = None
        return self._videos[url]

    def video_frame(self, url: str | None, t: float) -> np.ndarray | None:
        """RGB frame of a video at t seconds (clamped to its length), or None."""
        if not url:
            return None
        clip = self._open_video(url)
        if clip is None:
            return None
        last = max(0.0, clip.duration - 1.0 / (clip.fps or 30))
        try:
            frame = clip.get_frame(min(max(0.0, t), last))
        except _VIDEO_ERRORS as e:
            logger.warning("Video frame read failed for %s at %.2fs: %s", url, t, e)
            return None
        return np.asarray(frame[:, :, :3], dtype=np.uint8)

    def close(self) -> None:
        for clip in self._videos.values():
            if clip is not None:
                clip.close()
        self._videos.clear()
        self._images.clear()
