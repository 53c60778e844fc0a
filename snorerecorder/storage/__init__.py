"""Durable storage for recording sessions."""

from .file_manager import (
    FileManager,
    encode_volume_history,
    decode_volume_history,
)

__all__ = [
    "FileManager",
    "encode_volume_history",
    "decode_volume_history",
]
