"""
Video export: screenshot the overlay page once per frame, then hand the
frames to ffmpeg.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from collections import deque
from pathlib import Path
from typing import Callable, Optional, Sequence

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from fitvideo.overlay import render_overlay_html
from fitvideo.timeline import Timeline, frame_times

log = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.png"


class FrameCapture:
    """
    Headless Chrome that loads the overlay page and screenshots it.

    Use as a context manager so the browser is always shut down.
    """

    def __init__(self, width: int, height: int, headless: bool = True):
        self.width = width
        self.height = height
        self.headless = headless
        self.driver: Optional[webdriver.Chrome] = None

    def _init_driver(self) -> webdriver.Chrome:
        """Initialize Chrome WebDriver sized to the output frame."""
        chrome_options = Options()

        if self.headless:
            chrome_options.add_argument('--headless=new')

        chrome_options.add_argument('--no-sandbox')
        chrome_options.add_argument('--disable-dev-shm-usage')
        chrome_options.add_argument('--disable-gpu')
        chrome_options.add_argument('--hide-scrollbars')
        chrome_options.add_argument(f'--window-size={self.width},{self.height}')

        service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=chrome_options)

        log.info("Initialized Chrome WebDriver (headless=%s)", self.headless)
        return driver

    def __enter__(self) -> FrameCapture:
        self.driver = self._init_driver()
        return self

    def __exit__(self, *exc) -> None:
        if self.driver is not None:
            self.driver.quit()
            self.driver = None

    def load(self, html_path: Path) -> None:
        self.driver.get(html_path.resolve().as_uri())
        WebDriverWait(self.driver, 5).until(
            EC.presence_of_element_located((By.CLASS_NAME, "background-bar"))
        )

    def capture(self, state: dict, frame_path: Path) -> None:
        self.driver.execute_script("window.applyState(arguments[0]);", state)
        self.driver.save_screenshot(str(frame_path))


def capture_frames(
    capture: FrameCapture,
    html_path: Path,
    frames_dir: Path,
    timeline: Timeline,
    times: Sequence[float],
) -> int:
    """Render one PNG per entry in times; returns the frame count."""
    capture.load(html_path)
    total = len(times)
    report_every = 100 if total > 1000 else 30
    log.info("Capturing %d frames...", total)

    for i, t in enumerate(times):
        capture.capture(timeline.render(t).to_dict(), frames_dir / (FRAME_PATTERN % i))
        if (i + 1) % report_every == 0 or i == total - 1:
            log.info("  Captured %d/%d frames (%.1f%%)", i + 1, total, 100.0 * (i + 1) / total)

    return total


def ffmpeg_command(frames_dir: Path, fps: int, output_path: Path, ffmpeg_bin: str = "ffmpeg") -> list[str]:
    return [
        ffmpeg_bin,
        "-framerate", str(fps),
        "-i", str(frames_dir / FRAME_PATTERN),
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-profile:v", "high",
        "-crf", "18",
        "-preset", "medium",
        "-movflags", "+faststart",
        "-y",
        str(output_path),
    ]


def encode_video(frames_dir: Path, fps: int, output_path: Path, ffmpeg_bin: str = "ffmpeg") -> None:
    cmd = ffmpeg_command(frames_dir, fps, output_path, ffmpeg_bin)
    log.info("Combining frames into video: %s", " ".join(cmd))
    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError as e:
        raise RuntimeError(
            f"{ffmpeg_bin} not found. Please install ffmpeg: brew install ffmpeg (macOS) "
            "or visit https://ffmpeg.org/download.html"
        ) from e

    tail: deque[str] = deque(maxlen=80)
    for line in proc.stdout:
        tail.append(line)
    code = proc.wait()
    if code != 0:
        msg = f"ffmpeg exited with code {code}"
        last = "".join(tail).strip()
        if last:
            msg += f"\nLast ffmpeg output:\n{last}"
        raise RuntimeError(msg)


def create_overlay_video(
    output_path: Path,
    timeline: Timeline,
    duration: float,
    fps: int,
    width: int,
    height: int,
    sizing_duration: float | None = None,
    save_html: bool = False,
    unit: str = "mile",
    ffmpeg_bin: str = "ffmpeg",
    headless: bool = True,
    capture_factory: Callable[[int, int, bool], FrameCapture] = FrameCapture,
) -> Path:
    """
    Render the overlay clip for the first `duration` seconds of the timeline.

    Bars are proportioned against sizing_duration, so a shortened clip still
    shows the full workout layout. Temporary files live next to the output
    and are removed whatever happens.
    """
    log.info("Creating video with progress bar: %.1fs at %dfps -> %s", duration, fps, output_path)
    temp_dir = output_path.parent / f".temp_{int(time.time() * 1000)}"
    frames_dir = temp_dir / "frames"
    frames_dir.mkdir(parents=True, exist_ok=True)

    try:
        html = render_overlay_html(
            timeline.segments,
            width,
            height,
            sizing_duration=sizing_duration or duration,
            initial_state=timeline.render(0.0),
            unit=unit,
        )
        html_path = temp_dir / "template.html"
        html_path.write_text(html, encoding="utf-8")

        if save_html:
            saved = output_path.with_suffix(".html")
            saved.write_text(html, encoding="utf-8")
            log.info("HTML template saved to: %s", saved)

        with capture_factory(width, height, headless) as capture:
            capture_frames(capture, html_path, frames_dir, timeline, frame_times(duration, fps))

        encode_video(frames_dir, fps, output_path, ffmpeg_bin)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    log.info("Successfully created video: %s", output_path)
    return output_path
