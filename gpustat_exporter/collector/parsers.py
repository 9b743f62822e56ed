from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple, Union

from .errors import MalformedLineError, ReportReadError
from .models import GPU, Process, Snapshot

logger = logging.getLogger(__name__)

# Report layout (`gpustat` with no arguments):
#
#   gpu-host-01  Sat Oct 18 05:39:00 2026  535.104.05
#   [0] Tesla T4 | 49°C,   0 % |  1871 / 97887 MB | alice(1224M) bob(512M)
#   [1] Tesla T4 | 37'C,  12 % |     3 / 15360 MB |

# ASCII classes: `[٣]` is not a GPU index, non-ASCII letters never join a username
INDEX_RE = re.compile(r"^\[(\d+)\]", re.ASCII)
TEMP_UTIL_RE = re.compile(r"(\d+)[°']C,\s*(\d+)\s*%", re.ASCII)
MEMORY_RE = re.compile(r"(\d+)\s*/\s*(\d+)\s*MB", re.ASCII)
PROCESS_RE = re.compile(r"(\w+)\((\d+)M\)", re.ASCII)

HEADER_MIN_FIELDS = 5
GPU_LINE_MIN_SECTIONS = 3

# -----------------------------
# Helpers
# -----------------------------

def _safe_float(text: Optional[str], default: float = 0.0) -> float:
    # TODO: expose unparsable readings as missing instead of 0 once the
    # dashboards can tell a real 0 °C apart from "no data".
    try:
        return float(text) if text else default
    except (TypeError, ValueError):
        return default


def _parse_header(line: str) -> Tuple[str, str]:
    """Return (hostname, driver_version) from the first report line."""
    fields = line.split()
    hostname = fields[0] if fields else ""
    driver_version = fields[-1] if len(fields) >= HEADER_MIN_FIELDS else ""
    return hostname, driver_version


def _decode(raw: Union[str, bytes]) -> str:
    # a stray non-UTF-8 byte only spoils its own token, never the report
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw).decode("utf-8", errors="replace")
    raise ReportReadError(f"error reading gpustat output: got {type(raw).__name__}")

# -----------------------------
# Public API
# -----------------------------

def parse_processes(text: str) -> Tuple[Process, ...]:
    """Parse `user1(123M) user2(456M)`; tokens that do not match are dropped."""
    if not text or not text.strip():
        return ()
    return tuple(
        Process(username=user, memory_mb=_safe_float(mem))
        for user, mem in PROCESS_RE.findall(text)
    )


def parse_gpu_line(line: str) -> GPU:
    """Parse one `[N] ...` line.

    Raises MalformedLineError when the line has fewer than three `|`
    sections. Fields whose pattern does not match default to 0.
    """
    sections = line.split("|")
    if len(sections) < GPU_LINE_MIN_SECTIONS:
        raise MalformedLineError(line)

    match = INDEX_RE.match(line)
    index = match.group(1) if match else ""
    name = INDEX_RE.sub("", sections[0].strip()).strip()

    temperature = utilization = 0.0
    match = TEMP_UTIL_RE.search(sections[1].strip())
    if match:
        temperature = _safe_float(match.group(1))
        utilization = _safe_float(match.group(2))

    used = total = 0.0
    match = MEMORY_RE.search(sections[2].strip())
    if match:
        used = _safe_float(match.group(1))
        total = _safe_float(match.group(2))

    processes: Tuple[Process, ...] = ()
    if len(sections) > 3:
        processes = parse_processes(sections[3].strip())

    return GPU(
        index=index,
        name=name,
        temperature_c=temperature,
        utilization_pct=utilization,
        memory_used_mb=used,
        memory_total_mb=total,
        processes=processes,
    )


def parse_report(raw: Union[str, bytes]) -> Snapshot:
    """Parse a full `gpustat` report into a Snapshot.

    Malformed GPU lines are logged and skipped. Bytes are decoded leniently;
    only input that is not text at all raises ReportReadError.
    """
    lines = _decode(raw).splitlines()
    if not lines:
        return Snapshot()

    hostname, driver_version = _parse_header(lines[0])

    gpus: List[GPU] = []
    for line_no, line in enumerate(lines[1:], start=2):
        if not line.startswith("["):
            continue
        try:
            gpus.append(parse_gpu_line(line))
        except MalformedLineError as exc:
            logger.warning("failed to parse GPU line %d: %s", line_no, exc.reason)

    return Snapshot(hostname=hostname, driver_version=driver_version, gpus=tuple(gpus))
