"""
Document chunking service
Splits long text into overlapping, boundary-aware chunks sized for embedding,
and prepares the section rows (metadata, plain text and Markdown) stored for
each chunk.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sales_coach.models.section import SectionMetadata, TextChunk
from sales_coach.utils.markdown import extract_section_title, remove_markdown_formatting

DEFAULT_MAX_CHUNK_LENGTH = 1500
DEFAULT_OVERLAP = 200

# How far back from the raw window end a break may sit to be preferred.
PARAGRAPH_LOOKBACK = 200
SENTENCE_LOOKBACK = 100
# How far forward a chunk start may move to avoid beginning mid-word.
WORD_ALIGN_LOOKAHEAD = 20


def _last_index(text: str, needle: str, position: int) -> int:
    """Index of the last ``needle`` starting at or before ``position``, or -1."""
    return text.rfind(needle, 0, position + len(needle))


def _find_break(text: str, start: int, end: int) -> int:
    paragraph_break = _last_index(text, "\n\n", end)
    # the period must stay inside the window
    sentence_break = text.rfind(". ", 0, end + 1)
    space_break = _last_index(text, " ", end)

    if paragraph_break > start and paragraph_break > end - PARAGRAPH_LOOKBACK:
        return paragraph_break
    if sentence_break > start and sentence_break > end - SENTENCE_LOOKBACK:
        # keep the period with its sentence
        return sentence_break + 1
    if space_break > start:
        return space_break
    return end


def split_text_into_chunks(
    text: str,
    max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
    overlap: int = DEFAULT_OVERLAP,
) -> List[str]:
    """
    Split text into overlapping chunks that end on natural breaks.

    Each window is at most ``max_chunk_length`` characters and is pulled back
    to a paragraph break (within 200 chars), a sentence break (within 100
    chars) or the last space, in that order. The next window starts
    ``overlap`` characters before the previous end, nudged forward to the
    next word when a space is close.

    A window with no break point at all is cut at the raw limit, which can
    split a word.

    Args:
        text: Source text
        max_chunk_length: Maximum characters per chunk
        overlap: Characters shared by consecutive chunks

    Returns:
        Trimmed chunks in source order; text that already fits is returned
        unchanged as the only chunk
    """
    if max_chunk_length <= 0:
        raise ValueError("max_chunk_length must be positive")
    if overlap < 0:
        raise ValueError("overlap must not be negative")

    if len(text) <= max_chunk_length:
        return [text]

    chunks: List[str] = []
    start = 0
    text_length = len(text)

    while start < text_length:
        end = start + max_chunk_length
        if end < text_length:
            end = _find_break(text, start, end)

        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)

        next_start = end - overlap
        if (
            0 < next_start < text_length
            and text[next_start] != " "
            and text[next_start] != "\n"
        ):
            next_space = text.find(" ", next_start)
            if next_space != -1 and next_space < next_start + WORD_ALIGN_LOOKAHEAD:
                next_start = next_space + 1

        # a break close to the window start can leave the overlap reaching
        # behind it; drop the overlap rather than revisit the same window
        if next_start <= start:
            next_start = end
        start = next_start

    return chunks


def count_words(chunk: str) -> int:
    """Number of whitespace-delimited tokens."""
    return len(chunk.split())


def chunk_text(
    text: str,
    max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
    overlap: int = DEFAULT_OVERLAP,
) -> List[TextChunk]:
    """Like :func:`split_text_into_chunks`, with index and word count attached."""
    return [
        TextChunk(text=piece, chunk_index=index, word_count=count_words(piece))
        for index, piece in enumerate(split_text_into_chunks(text, max_chunk_length, overlap))
    ]


def build_section_metadata(title: str, chunk: TextChunk, total_chunks: int) -> SectionMetadata:
    return SectionMetadata(
        title=title,
        chunk_index=chunk.chunk_index,
        total_chunks=total_chunks,
        word_count=chunk.word_count,
    )


@dataclass(frozen=True)
class PreparedSection:
    """A chunk ready to be embedded and stored."""

    chunk: TextChunk
    metadata: SectionMetadata
    content: str
    content_markdown: str


class DocumentChunker:
    """Chunker with fixed window settings, producing storable section rows."""

    def __init__(
        self,
        max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
        overlap: int = DEFAULT_OVERLAP,
    ):
        """
        Args:
            max_chunk_length: Maximum characters per chunk, default 1500
            overlap: Characters shared by consecutive chunks, default 200
        """
        self.max_chunk_length = max_chunk_length
        self.overlap = overlap

    def chunk(self, text: str) -> List[TextChunk]:
        return chunk_text(text, self.max_chunk_length, self.overlap)

    def prepare_sections(
        self, content: str, title: Optional[str] = None
    ) -> Tuple[str, List[PreparedSection]]:
        """
        Chunk a Markdown document and build the rows stored for each chunk.

        The section title comes from the first heading of the whole document,
        so every chunk of one upload shares it.

        Args:
            content: Markdown source
            title: Overrides the extracted title

        Returns:
            (title, prepared sections)
        """
        section_title = title or extract_section_title(content)
        chunks = self.chunk(content)
        total = len(chunks)

        sections = [
            PreparedSection(
                chunk=chunk,
                metadata=build_section_metadata(section_title, chunk, total),
                content=remove_markdown_formatting(chunk.text),
                content_markdown=chunk.text,
            )
            for chunk in chunks
        ]
        return section_title, sections
