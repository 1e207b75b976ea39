"""
Chunk URI sequencing.

Segmented resources name their chunks with a numeric token at the end of the
last path segment, before the extension:

    https://cdn.example.com/v/123/video_003.ts?token=abc
                                  ^^^^^^ ^^^
                         prefix + separator  token

ChunkSequencer maps the URI of chunk N to the URI of chunk N+1 without any
network access. Everything outside the last path segment (host, earlier path
segments, query string, fragment) is carried over verbatim.
"""

from typing import Tuple

from segment_loader.download.models import DEFAULT_SEPARATOR, SequencerState
from segment_loader.errors.exceptions import InvalidChunkTokenError


def split_last_segment(uri: str) -> Tuple[str, str, str]:
    """
    Split a URI around the last segment of its path.

    Returns:
        (head, segment, tail) with ``head + segment + tail == uri``; head ends
        with the final ``/`` of the path and tail starts at the query or
        fragment delimiter (or is empty).
    """
    cut = len(uri)
    for marker in ("?", "#"):
        pos = uri.find(marker)
        if pos != -1:
            cut = min(cut, pos)

    base, tail = uri[:cut], uri[cut:]
    slash = base.rfind("/")
    return base[: slash + 1], base[slash + 1 :], tail


def split_chunk_token(segment: str, separator: str) -> Tuple[str, str, str]:
    """
    Split a path segment into (prefix, token, suffix).

    The suffix starts at the first ``.`` (extension and any trailing
    qualifiers); the token is what follows the last ``separator`` before it.

    Example:
        >>> split_chunk_token("video_003.ts", "_")
        ('video_', '003', '.ts')
    """
    dot = segment.find(".")
    stem, suffix = (segment, "") if dot == -1 else (segment[:dot], segment[dot:])
    token = stem.split(separator)[-1]
    return stem[: len(stem) - len(token)], token, suffix


class ChunkSequencer:
    """
    Derives successive chunk URIs from a starting URI.

    The sequencer itself only holds configuration; per-job position and the
    remembered zero-padding width live in a SequencerState so that independent
    jobs never share state.

    Usage:
        sequencer = ChunkSequencer(separator="_", zero_pad=True)
        state = sequencer.start("https://cdn.example.com/clip_007.ts")
        sequencer.advance(state)
        state.uri  # "https://cdn.example.com/clip_008.ts"
    """

    def __init__(self, separator: str = DEFAULT_SEPARATOR, zero_pad: bool = True):
        if len(separator) != 1:
            raise ValueError(f"separator must be a single character, got {separator!r}")
        self.separator = separator
        self.zero_pad = zero_pad

    def chunk_token(self, uri: str) -> str:
        """Numeric token of ``uri`` as text, e.g. ``"003"``."""
        _, segment, _ = split_last_segment(uri)
        _, token, _ = split_chunk_token(segment, self.separator)
        return token

    def chunk_index(self, uri: str) -> int:
        """
        Chunk number encoded in ``uri``.

        Raises:
            InvalidChunkTokenError: If the token is not a non-negative integer
        """
        return self._parse_token(self.chunk_token(uri), uri)

    def start(self, uri: str) -> SequencerState:
        """Create the state for a sequence beginning at ``uri``."""
        return SequencerState(uri=uri, chunk_index=self.chunk_index(uri))

    def advance(self, state: SequencerState) -> SequencerState:
        """
        Move ``state`` to the next chunk.

        With zero padding enabled the width of the first token seen is recorded
        in ``state.pad_width`` and used for every later increment. Numbers that
        already need more digits than the recorded width are rendered unpadded
        (``999`` -> ``1000`` under width 3).

        Returns:
            The same state object, updated in place

        Raises:
            InvalidChunkTokenError: If the current token is not numeric
        """
        head, segment, tail = split_last_segment(state.uri)
        prefix, token, suffix = split_chunk_token(segment, self.separator)
        next_index = self._parse_token(token, state.uri) + 1

        if self.zero_pad:
            if state.pad_width == 0:
                state.pad_width = len(token)
            next_token = str(next_index).zfill(state.pad_width)
        else:
            next_token = str(next_index)

        state.uri = f"{head}{prefix}{next_token}{suffix}{tail}"
        state.chunk_index = next_index
        return state

    def next_uri(self, uri: str) -> str:
        """URI of the chunk following ``uri``, using a fresh state."""
        return self.advance(self.start(uri)).uri

    @staticmethod
    def _parse_token(token: str, uri: str) -> int:
        if not token or not token.isascii() or not token.isdigit():
            raise InvalidChunkTokenError(token, uri)
        return int(token)
