"""
Token counting functionality for repo2prompt.

This module estimates prompt size with OpenAI's tiktoken library. Encodings
are loaded once; when the preferred encoding for a model is unavailable or
fails on a given text, the baseline encoding is used and the result is
marked approximate. Special-token markers such as ``<|endoftext|>`` in the
text are counted as ordinary text. Counting never raises.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

import tiktoken

from .models import LlmModel, TokenEstimate

logger = logging.getLogger(__name__)

BASELINE_ENCODING = "cl100k_base"
PREFERRED_ENCODING = "o200k_base"

# model -> (encoding, uses a native tokenizer)
MODEL_ENCODINGS: Dict[LlmModel, Tuple[str, bool]] = {
    LlmModel.GPT_4O: (PREFERRED_ENCODING, True),
    LlmModel.GPT_35_TURBO: (BASELINE_ENCODING, True),
    LlmModel.CLAUDE_SONNET: (BASELINE_ENCODING, False),
    LlmModel.GEMINI_PRO: (BASELINE_ENCODING, False),
}

_WARMUP_TEXT = "This is a test"


class TokenEstimator:
    """
    Counts tokens for a chosen model family.

    The baseline (cl100k_base) and preferred (o200k_base) encodings are
    loaded at construction. Models without a native tokenizer are counted
    with the baseline encoding as a proxy.
    """

    def __init__(self):
        self.encoders: Dict[str, Any] = {}
        for encoding_name in (BASELINE_ENCODING, PREFERRED_ENCODING):
            encoder = self._load_encoding(encoding_name)
            if encoder is not None:
                self.encoders[encoding_name] = encoder

    @staticmethod
    def _load_encoding(encoding_name: str) -> Optional[Any]:
        try:
            encoder = tiktoken.get_encoding(encoding_name)
            encoder.encode(_WARMUP_TEXT)
            return encoder
        except Exception as e:
            logger.warning(f"Failed to initialize token encoder '{encoding_name}': {e}")
            return None

    @property
    def is_available(self) -> bool:
        """Check if at least the baseline encoding is loaded."""
        return BASELINE_ENCODING in self.encoders

    @property
    def preferred_available(self) -> bool:
        return PREFERRED_ENCODING in self.encoders

    def resolve(self, model: Union[LlmModel, str, None]) -> Tuple[str, str, bool]:
        """
        Pick the encoding for a model.

        Returns:
            Tuple of (encoding_to_use, display_name, is_approximate).
        """
        if isinstance(model, str):
            model = LlmModel.from_name(model)
        if model not in MODEL_ENCODINGS:
            return BASELINE_ENCODING, BASELINE_ENCODING, True

        encoding_name, native = MODEL_ENCODINGS[model]
        if encoding_name == PREFERRED_ENCODING and not self.preferred_available:
            return BASELINE_ENCODING, f"{BASELINE_ENCODING} (o200k unavailable)", True
        return encoding_name, encoding_name, not native

    def count(self, text: str, model: Union[LlmModel, str, None] = LlmModel.GPT_4O) -> TokenEstimate:
        """
        Count tokens in the given text.

        Args:
            text: The text to count tokens for.
            model: Model family (LlmModel or its name); unknown models use
                the baseline encoding and are always approximate.

        Returns:
            TokenEstimate(count, encoding_name, is_approximate). Any encoding
            failure yields a zero count marked approximate.
        """
        encoding_name, display_name, approximate = self.resolve(model)
        if not text:
            return TokenEstimate(0, display_name, approximate)

        encoder = self.encoders.get(encoding_name)
        if encoder is not None:
            try:
                return TokenEstimate(len(encoder.encode(text, disallowed_special=())), display_name, approximate)
            except Exception as e:
                logger.debug(f"Error counting tokens with {encoding_name}: {e}")
                if encoding_name == BASELINE_ENCODING:
                    return TokenEstimate(0, display_name, True)

        baseline = self.encoders.get(BASELINE_ENCODING)
        if baseline is None:
            return TokenEstimate(0, display_name, True)
        try:
            return TokenEstimate(
                len(baseline.encode(text, disallowed_special=())), f"{BASELINE_ENCODING} (o200k fallback)", True
            )
        except Exception as e:
            logger.debug(f"Error counting tokens with {BASELINE_ENCODING}: {e}")
            return TokenEstimate(0, display_name, True)


def format_estimate(estimate: TokenEstimate) -> str:
    """Render an estimate as e.g. ``Tokens: 1,234 (tokenizer: o200k_base)``."""
    kind = "proxy" if estimate.is_approximate else "tokenizer"
    return f"Tokens: {estimate.count:,} ({kind}: {estimate.encoding_name})"
