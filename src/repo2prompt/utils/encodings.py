"""
Encoding detection and text decoding for selected file contents.

Files are read as bytes; a byte order mark picks the codec when present,
otherwise the configured fallback encodings are tried in order.
"""

import logging
from typing import List, Optional, Tuple


# Common encodings to try, ordered by likelihood
DEFAULT_ENCODINGS = [
    'utf-8',
    'utf-8-sig',
    'latin-1',
    'cp1252',
]

# Longer marks first so UTF-32 LE is not mistaken for UTF-16 LE
_BOMS = [
    (b'\xff\xfe\x00\x00', 'utf-32'),
    (b'\x00\x00\xfe\xff', 'utf-32'),
    (b'\xef\xbb\xbf', 'utf-8-sig'),
    (b'\xff\xfe', 'utf-16'),
    (b'\xfe\xff', 'utf-16'),
]

logger = logging.getLogger(__name__)


class EncodingDetector:
    """Handles encoding detection and text decoding."""

    def __init__(self, fallback_encodings: Optional[List[str]] = None):
        self.encodings = fallback_encodings or DEFAULT_ENCODINGS

    @staticmethod
    def detect_bom(content: bytes) -> Optional[str]:
        """Return the codec named by a leading byte order mark, if any."""
        for bom, encoding in _BOMS:
            if content.startswith(bom):
                return encoding
        return None

    def decode_bytes(self, content: bytes, file_path: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
        """
        Decode bytes to text.

        Args:
            content: Raw bytes to decode.
            file_path: Optional file path for log messages.

        Returns:
            Tuple of (decoded_text, error_message).
        """
        bom_encoding = self.detect_bom(content)
        if bom_encoding:
            try:
                return content.decode(bom_encoding), None
            except UnicodeDecodeError as e:
                logger.debug(f"BOM decode failed for {file_path}: {e}")

        for encoding in self.encodings:
            try:
                return content.decode(encoding), None
            except (UnicodeDecodeError, LookupError):
                continue

        logger.info(f"Encoding detection failed for {file_path}: tried {len(self.encodings)} encodings")
        return None, f"Unable to decode file with available encodings ({', '.join(self.encodings)})"
