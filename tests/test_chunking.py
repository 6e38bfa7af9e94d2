"""
Tests for chunk size parsing and splitting source files into chunks.
"""

import pytest

from xcontext.chunking import (
    ChunkFile,
    FileContext,
    parse_byte_size,
    split_files_into_chunks,
)
from xcontext.errors import ChunkingError
from xcontext.reader import FileInfo


def info(root, name, content):
    return FileInfo(path=root / name, content=content, size=len(content.encode("utf-8")))


class TestParseByteSize:

    @pytest.mark.parametrize("text, expected", [
        ("100", 100),
        ("10 b", 10),
        ("5MB", 5_000_000),
        ("1024kb", 1_024_000),
        ("1.5KB", 1500),
        ("2MiB", 2 * 1024 ** 2),
        ("1k", 1000),
        ("1GiB", 1024 ** 3),
    ])
    def test_valid_sizes(self, text, expected):
        assert parse_byte_size(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "5XB", "MB", "-5MB"])
    def test_invalid_sizes(self, text):
        with pytest.raises(ChunkingError, match="Invalid chunk size format"):
            parse_byte_size(text)


class TestSplitFilesIntoChunks:

    def test_groups_files_up_to_limit(self, tmp_path):
        files = [info(tmp_path, n, "x" * 40) for n in ("a.py", "b.py", "c.py")]

        chunks = split_files_into_chunks(files, "100", tmp_path)

        assert [[f.path for f in c.files] for c in chunks] == [["a.py", "b.py"], ["c.py"]]
        assert [c.current_part for c in chunks] == [1, 2]
        assert all(c.total_parts == 2 for c in chunks)

    def test_oversized_file_gets_own_chunk(self, tmp_path):
        files = [
            info(tmp_path, "a.py", "x" * 10),
            info(tmp_path, "big.py", "x" * 500),
            info(tmp_path, "c.py", "x" * 10),
        ]

        chunks = split_files_into_chunks(files, "100", tmp_path)

        assert [[f.path for f in c.files] for c in chunks] == [["a.py"], ["big.py"], ["c.py"]]

    def test_size_is_measured_in_utf8_bytes(self, tmp_path):
        files = [info(tmp_path, "a.txt", "é" * 30), info(tmp_path, "b.txt", "é" * 30)]
        chunks = split_files_into_chunks(files, "100", tmp_path)
        assert len(chunks) == 2

    def test_empty_files_are_skipped(self, tmp_path):
        files = [info(tmp_path, "empty.py", ""), info(tmp_path, "a.py", "data")]
        chunks = split_files_into_chunks(files, "1KB", tmp_path)
        assert [f.path for f in chunks[0].files] == ["a.py"]

    def test_no_content_gives_no_chunks(self, tmp_path):
        assert split_files_into_chunks([info(tmp_path, "e.py", "")], "1KB", tmp_path) == []

    def test_zero_limit_is_rejected(self, tmp_path):
        with pytest.raises(ChunkingError, match="greater than 0"):
            split_files_into_chunks([info(tmp_path, "a.py", "x")], "0", tmp_path)

    def test_paths_are_project_relative(self, tmp_path):
        chunks = split_files_into_chunks([info(tmp_path, "src/a.py", "x")], "1KB", tmp_path)
        assert chunks[0].files == [FileContext(path="src/a.py", content="x")]


class TestChunkFile:

    def test_to_dict(self):
        chunk = ChunkFile(files=[FileContext("a.py", "x")], current_part=1, total_parts=3)
        assert chunk.to_dict() == {
            "files": [{"path": "a.py", "content": "x"}],
            "chunkInfo": {"currentPart": 1, "totalParts": 3},
        }
