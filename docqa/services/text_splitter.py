"""Recursive character text splitting with overlapping chunks.

Splits extracted document text into chunks of at most ``chunk_size``
characters (before overlap is added), preferring natural boundaries.  The
separators are tried in priority order:

    "\\n\\n"  paragraph
    "\\n"     line
    ". "     sentence
    " "      word
    ""       hard cut into fixed-size slices

Pieces on one separator are greedily packed back together (re-joined with
that separator) until the next piece would overflow; a piece that is still
too long on its own recurses into the next separator.

After splitting, each chunk (except the first) is prefixed with the last
``chunk_overlap`` characters of the previous chunk plus a space, but only
when the combination stays within ``chunk_size + chunk_overlap``.  A chunk
that would overflow keeps its original text, so overlap is best-effort.

Everything here is pure and deterministic.
"""

from __future__ import annotations

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def split(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    separators: list[str] | tuple[str, ...] = DEFAULT_SEPARATORS,
) -> list[str]:
    """Split *text* into trimmed, non-empty, optionally overlapping chunks.

    Parameters
    ----------
    text:
        The text to split.  Empty or whitespace-only text yields ``[]``.
    chunk_size:
        Maximum characters per chunk before overlap is applied.
    chunk_overlap:
        Characters carried over from the previous chunk.  ``0`` disables
        overlap.
    separators:
        Boundaries to try, highest priority first.  The empty string means
        "cut at fixed width" and should come last.

    Returns
    -------
    list[str]
        Chunks in document order.

    Raises
    ------
    ValueError
        If ``chunk_size`` is not positive or ``chunk_overlap`` is negative.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0:
        raise ValueError(f"chunk_overlap must be non-negative, got {chunk_overlap}")

    raw = _split_text(text, list(separators), chunk_size)
    chunks = [piece.strip() for piece in raw if piece.strip()]

    if chunk_overlap == 0 or len(chunks) <= 1:
        return chunks

    merged: list[str] = [chunks[0]]
    for i in range(1, len(chunks)):
        # Overlap is taken from the previous chunk as split, never from an
        # already-overlapped chunk, so prefixes do not compound.
        overlap = chunks[i - 1][-chunk_overlap:]
        combined = f"{overlap} {chunks[i]}"
        if len(combined) <= chunk_size + chunk_overlap:
            merged.append(combined)
        else:
            merged.append(chunks[i])
    return merged


class RecursiveTextSplitter:
    """Configured wrapper around :func:`split`.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk before overlap (default 1000).
    chunk_overlap:
        Characters of overlap between consecutive chunks (default 200).
    separators:
        Boundary priority list (default :data:`DEFAULT_SEPARATORS`).
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        separators: list[str] | tuple[str, ...] = DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be non-negative, got {chunk_overlap}")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = tuple(separators)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    def split(self, text: str) -> list[str]:
        return split(
            text,
            chunk_size=self._chunk_size,
            chunk_overlap=self._chunk_overlap,
            separators=self._separators,
        )


# ------------------------------------------------------------------
# Private helpers
# ------------------------------------------------------------------


def _hard_cut(text: str, size: int) -> list[str]:
    return [text[start : start + size] for start in range(0, len(text), size)]


def _split_text(text: str, separators: list[str], chunk_size: int) -> list[str]:
    """Recursively split *text* so every piece is at most *chunk_size* chars."""
    if len(text) <= chunk_size:
        return [text]

    if not separators:
        return _hard_cut(text, chunk_size)

    separator, remaining = separators[0], separators[1:]

    if separator == "":
        return _hard_cut(text, chunk_size)

    pieces: list[str] = []
    current = ""
    for part in text.split(separator):
        candidate = f"{current}{separator}{part}" if current else part
        if len(candidate) <= chunk_size:
            current = candidate
            continue

        if current:
            pieces.append(current)

        if len(part) > chunk_size and remaining:
            pieces.extend(_split_text(part, remaining, chunk_size))
            current = ""
        elif len(part) > chunk_size:
            pieces.extend(_hard_cut(part, chunk_size))
            current = ""
        else:
            current = part

    if current:
        pieces.append(current)

    return pieces
