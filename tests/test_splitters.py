import pytest

from srag.errors import ContentError
from srag.models import Document
from srag.splitters import (
    FixedSizeTextSplitter,
    HybridTextSplitter,
    SemanticTextSplitter,
    SentenceTextSplitter,
    TextSplitter,
    create_splitter,
    make_chunk_id,
)


def _document(text: str, doc_id: str = "doc") -> Document:
    return Document(id=doc_id, format="txt", text=text, metadata={"file_name": f"{doc_id}.txt"})


class TestFixedSizeTextSplitter:
    def test_windows_advance_by_size_minus_overlap(self) -> None:
        splitter = FixedSizeTextSplitter(chunk_size=10, chunk_overlap=4)
        chunks = splitter.split_text("abcdefghijklmnopqrst")

        assert chunks == ["abcdefghij", "ghijklmnop", "mnopqrst"]

    def test_no_chunk_exceeds_size(self) -> None:
        splitter = FixedSizeTextSplitter(chunk_size=50, chunk_overlap=10)
        chunks = splitter.split_text("x" * 437)

        assert all(len(c) <= 50 for c in chunks)
        assert chunks[-1].endswith("x")

    def test_overlap_clamped_when_not_smaller_than_size(self) -> None:
        splitter = FixedSizeTextSplitter(chunk_size=100, chunk_overlap=150)
        assert splitter.chunk_overlap == 25

    def test_short_text_single_chunk(self) -> None:
        assert FixedSizeTextSplitter(100, 20).split_text("short") == ["short"]

    def test_empty_text(self) -> None:
        assert FixedSizeTextSplitter(100, 20).split_text("") == []


class TestSemanticTextSplitter:
    def test_packs_paragraphs_until_size(self) -> None:
        splitter = SemanticTextSplitter(chunk_size=30, chunk_overlap=0)
        text = "First para.\n\nSecond para.\n\nThird paragraph here."

        chunks = splitter.split_text(text)

        assert chunks == ["First para.\n\nSecond para.", "Third paragraph here."]

    def test_overlap_seeds_next_chunk(self) -> None:
        splitter = SemanticTextSplitter(chunk_size=20, chunk_overlap=5)
        chunks = splitter.split_text("aaaaaaaaaa\n\nbbbbbbbbbb\n\ncccccccccc")

        assert chunks[0] == "aaaaaaaaaa"
        assert chunks[1].startswith("aaaaa\n\nbbbbbbbbbb")

    def test_oversize_paragraph_kept_whole(self) -> None:
        splitter = SemanticTextSplitter(chunk_size=10, chunk_overlap=0)
        chunks = splitter.split_text("y" * 40)
        assert chunks == ["y" * 40]

    def test_blank_paragraphs_skipped(self) -> None:
        splitter = SemanticTextSplitter(chunk_size=100, chunk_overlap=0)
        assert splitter.split_text("\n\n   \n\nOnly one.\n\n") == ["Only one."]


class TestHybridTextSplitter:
    def test_hard_size_bound(self) -> None:
        splitter = HybridTextSplitter(chunk_size=40, chunk_overlap=10)
        text = "Intro.\n\n" + "z" * 150 + "\n\nOutro."

        chunks = splitter.split_text(text)

        assert all(len(c) <= 40 for c in chunks)
        assert chunks[0].startswith("Intro.")
        assert chunks[-1].endswith("Outro.")

    def test_default_text_splitter_is_hybrid(self) -> None:
        assert TextSplitter is HybridTextSplitter


class TestSentenceTextSplitter:
    def test_splits_into_nonempty_chunks(self) -> None:
        splitter = SentenceTextSplitter(chunk_size=64, chunk_overlap=8)
        text = " ".join(f"Sentence number {i} talks about topic {i}." for i in range(60))

        chunks = splitter.split_text(text)

        assert len(chunks) > 1
        assert all(c.strip() for c in chunks)

    def test_overlap_clamped(self) -> None:
        splitter = SentenceTextSplitter(chunk_size=64, chunk_overlap=64)
        assert splitter.chunk_overlap == 16

    def test_blank_text(self) -> None:
        assert SentenceTextSplitter(64, 8).split_text("   ") == []


class TestSplitDocument:
    def test_chunks_ordered_with_position_flags(self) -> None:
        splitter = FixedSizeTextSplitter(chunk_size=10, chunk_overlap=0)
        chunks = splitter.split_document(_document("0123456789abcdefghijKLM"), extract_metadata=False)

        assert [c.index for c in chunks] == [0, 1, 2]
        assert chunks[0].metadata["is_first_chunk"] is True
        assert chunks[0].metadata["is_last_chunk"] is False
        assert chunks[-1].metadata["is_last_chunk"] is True
        assert all(c.document_id == "doc" for c in chunks)
        assert chunks[1].metadata["file_name"] == "doc.txt"
        assert chunks[1].metadata["format"] == "txt"

    def test_chunk_ids_stable(self) -> None:
        splitter = FixedSizeTextSplitter(chunk_size=10, chunk_overlap=0)
        first = splitter.split_document(_document("0123456789abcdef"), extract_metadata=False)
        second = splitter.split_document(_document("0123456789abcdef"), extract_metadata=False)

        assert [c.id for c in first] == [c.id for c in second]
        assert first[0].id == make_chunk_id("doc", 0, "0123456789")
        assert first[0].id.startswith("doc-0-")

    def test_metadata_chunk_appended_last(self) -> None:
        splitter = HybridTextSplitter(chunk_size=200, chunk_overlap=20)
        text = "Title: Pragmatics\nAuthor: Jane Doe\n\nBody text follows here."

        chunks = splitter.split_document(_document(text))

        meta = chunks[-1]
        assert meta.is_metadata
        assert meta.index == "meta"
        assert meta.content.startswith("DOCUMENT METADATA:")
        assert "Author: Jane Doe" in meta.content
        assert chunks[0].metadata["author"] == "Jane Doe"

    def test_no_metadata_chunk_when_disabled(self) -> None:
        splitter = HybridTextSplitter(chunk_size=200, chunk_overlap=20)
        chunks = splitter.split_document(
            _document("Author: Jane Doe\n\nBody."), extract_metadata=False
        )
        assert not any(c.is_metadata for c in chunks)

    def test_empty_document_raises(self) -> None:
        with pytest.raises(ContentError, match="no content"):
            HybridTextSplitter().split_document(_document("   \n  "))


class TestCreateSplitter:
    @pytest.mark.parametrize(
        "strategy, cls",
        [
            ("fixed", FixedSizeTextSplitter),
            ("semantic", SemanticTextSplitter),
            ("hybrid", HybridTextSplitter),
            ("sentence", SentenceTextSplitter),
        ],
    )
    def test_strategies(self, strategy: str, cls: type) -> None:
        assert isinstance(create_splitter(strategy, 200, 20), cls)

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ValueError, match="Unknown chunking strategy"):
            create_splitter("paragraphs")

    def test_invalid_sizes(self) -> None:
        with pytest.raises(ValueError):
            create_splitter("fixed", chunk_size=0)
        with pytest.raises(ValueError):
            create_splitter("fixed", chunk_size=10, chunk_overlap=-1)
