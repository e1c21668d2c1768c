"""Microphone capture using ALSA's `arecord`.

Produces WAV files in the format the transcription services expect:
mono, 16-bit little-endian PCM, 16 kHz.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from asr_rag.errors import ResourceError, Stage, StageContext, ValidationError
from asr_rag.logging import get_logger

logger = get_logger(__name__)

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_FORMAT = "S16_LE"
DEFAULT_SECONDS = 5


def parse_seconds(value: str | None) -> int:
    """Parse a recording duration argument.

    Args:
        value: Raw argument, or None for the default

    Returns:
        Duration in whole seconds

    Raises:
        ValidationError: If the value is not a positive integer
    """
    if value is None:
        return DEFAULT_SECONDS

    try:
        seconds = int(value)
    except ValueError as e:
        raise ValidationError(f"invalid seconds: {value!r}") from e

    if seconds < 1:
        raise ValidationError(f"seconds must be at least 1, got {seconds}")

    return seconds


def build_command(seconds: int, out_path: Path) -> list[str]:
    return [
        "arecord",
        "-q",
        "-f", SAMPLE_FORMAT,
        "-r", str(SAMPLE_RATE),
        "-c", str(CHANNELS),
        "-d", str(seconds),
        str(out_path),
    ]


def record(seconds: int, out_path: Path | str) -> Path:
    """Record from the default microphone into a WAV file.

    Blocks for the duration of the recording.

    Raises:
        ValidationError: If seconds < 1
        ResourceError: If arecord is missing or fails
    """
    if seconds < 1:
        raise ValidationError(f"seconds must be at least 1, got {seconds}")

    if shutil.which("arecord") is None:
        raise ResourceError("arecord not found; install alsa-utils to record audio")

    out_path = Path(out_path)
    logger.info(f"Recording {seconds}s of audio", extra={"output": str(out_path)})

    result = subprocess.run(
        build_command(seconds, out_path),
        capture_output=True,
        text=True,
    )

    if result.returncode != 0:
        raise ResourceError(
            f"arecord exited with status {result.returncode}: {result.stderr.strip()}"
        )

    return out_path


@contextmanager
def recording(seconds: int) -> Iterator[Path]:
    """Record into a temporary WAV file that is removed on exit.

    Example:
        with recording(5) as wav_path:
            result = provider.transcribe(wav_path)
    """
    fd, name = tempfile.mkstemp(prefix="asr-rag-", suffix=".wav")
    os.close(fd)
    path = Path(name)

    try:
        with StageContext(Stage.RECORD, seconds=seconds):
            record(seconds, path)
        yield path
    finally:
        path.unlink(missing_ok=True)
