"""Sniff context built from the first bytes of a file."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SNIFF_BYTES = 256 * 1024  # 256 KiB


@dataclass
class ImportContext:
    """What a sniffer may look at. Never the whole file."""

    sniff_text: str
    sniff_bytes: bytes
    file_name: str  # Lowercased
    extension: str | None
    mime_type: str = ""


def get_extension(file_name: str) -> str | None:
    idx = file_name.rfind(".")
    if idx <= 0:
        return None
    ext = file_name[idx + 1 :].strip().lower()
    return ext or None


def decode_lossy(data: bytes) -> str:
    # A prefix may cut a multi-byte sequence in half; replace rather than fail.
    text = data.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff")


def build_import_context(
    data: bytes,
    file_name: str,
    mime_type: str = "",
    max_bytes: int = DEFAULT_SNIFF_BYTES,
) -> ImportContext:
    name = (file_name or "").lower()
    prefix = bytes(data[:max_bytes])
    return ImportContext(
        sniff_text=decode_lossy(prefix),
        sniff_bytes=prefix,
        file_name=name,
        extension=get_extension(name),
        mime_type=mime_type or "",
    )
