"""Utility helpers for pdf2docxauto."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, MutableMapping, Sequence, Union

PathLike = Union[str, os.PathLike[str]]

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure package-wide logging."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def to_path(path: PathLike) -> Path:
    """Normalize an input path to :class:`Path`."""
    return Path(path).expanduser().resolve()


def ensure_output_directory(path: Path) -> None:
    """Ensure the parent directory of ``path`` exists."""
    path.parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def time_block(logger: logging.Logger, message: str) -> Iterator[None]:
    """Context manager that logs the execution time of a code block."""
    start = datetime.now(tz=timezone.utc)
    logger.debug("Starting %s", message)
    try:
        yield
    finally:
        end = datetime.now(tz=timezone.utc)
        elapsed = (end - start).total_seconds()
        logger.info("%s completed in %.2fs", message, elapsed)


@contextmanager
def scoped_workdir(base_dir: PathLike | None, prefix: str) -> Iterator[Path]:
    """Yield a fresh scratch directory that is removed on every exit path.

    The directory is unique per call, so concurrent requests never share
    intermediate files.
    """
    parent: str | None = None
    if base_dir is not None:
        base = Path(base_dir)
        base.mkdir(parents=True, exist_ok=True)
        parent = str(base)
    with tempfile.TemporaryDirectory(prefix=prefix, dir=parent) as name:
        LOGGER.debug("Created scratch directory %s", name)
        try:
            yield Path(name)
        finally:
            LOGGER.debug("Removing scratch directory %s", name)


def which(executables: Sequence[str]) -> str | None:
    """Return the first executable from *executables* that exists.

    Entries may be absolute paths or bare command names looked up on ``PATH``.
    """
    for candidate in executables:
        if not candidate:
            continue
        if os.path.isabs(candidate):
            if Path(candidate).is_file():
                LOGGER.debug("Detected external tool at %s", candidate)
                return candidate
            continue
        found = shutil.which(candidate)
        if found:
            LOGGER.debug("Detected external tool: %s -> %s", candidate, found)
            return found
    return None


def run_subprocess(
    command: Sequence[str],
    *,
    timeout: float | None = None,
    env: MutableMapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *command* capturing output.

    Parameters
    ----------
    command:
        Command and arguments to execute.
    timeout:
        Seconds before the process is killed and
        :class:`subprocess.TimeoutExpired` is raised.
    env:
        Optional environment overrides.
    check:
        Whether to raise :class:`subprocess.CalledProcessError` on non-zero exit.
    """

    LOGGER.debug("Executing command: %s", " ".join(command))
    completed = subprocess.run(
        command,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=check,
        text=True,
        timeout=timeout,
    )
    if completed.stdout.strip():
        LOGGER.debug("stdout: %s", completed.stdout.strip()[:500])
    if completed.stderr.strip():
        LOGGER.debug("stderr: %s", completed.stderr.strip()[:500])
    return completed


def split_lines(text: str) -> list[str]:
    """Split *text* on line breaks, trimming each line but keeping blank ones."""
    return [line.strip() for line in text.replace("\r\n", "\n").split("\n")]


def parse_pdf_date(raw: str | None) -> datetime | None:
    """Parse a PDF date string into a timezone-aware :class:`datetime`."""
    if not raw:
        return None
    text = raw.strip()
    if text.startswith("D:"):
        text = text[2:]
    try:
        base = datetime.strptime(text[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None
    tz_sign = text[14:15]
    if tz_sign in {"+", "-"}:
        try:
            hours = int(text[15:17])
            minutes = int(text[18:20]) if len(text) >= 20 else 0
        except ValueError:
            hours = minutes = 0
        delta = timedelta(hours=hours, minutes=minutes)
        if tz_sign == "-":
            delta = -delta
        tz = timezone(delta)
    else:
        tz = timezone.utc
    return base.replace(tzinfo=tz)
