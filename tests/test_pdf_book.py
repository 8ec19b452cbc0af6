"""Combined puzzle book PDF tests."""

import random
import re

import pdf_book
import puzzle_assembler as asm


def _batch(n=3, template="Theme 2 (Dashed)"):
    puzzles = asm.assemble_puzzles(["wolf", "owl", "bee", "fox", "elk", "yak"], n, 2,
                                   size=10, rng=random.Random(3))
    return asm.PuzzleBatch(theme="Forest", template=template, puzzles=puzzles,
                           warning=None, total_words=6)


def _page_count(data: bytes) -> int:
    return len(re.findall(rb"/Type\s*/Page(?!s)", data))


def test_book_has_puzzle_and_answer_page_per_puzzle():
    data = pdf_book.build_puzzle_book(_batch(3))
    assert data.startswith(b"%PDF")
    assert _page_count(data) == 6


def test_book_writes_to_path_and_file_object(tmp_path):
    batch = _batch(1, template="Theme 3 (Table)")
    target = tmp_path / "puzzles.pdf"
    data = pdf_book.build_puzzle_book(batch, str(target))
    assert target.read_bytes() == data

    class Sink:
        def __init__(self):
            self.chunks = []

        def write(self, b):
            self.chunks.append(b)

    sink = Sink()
    pdf_book.build_puzzle_book(batch, sink)
    assert _page_count(b"".join(sink.chunks)) == 2


def test_book_accepts_unknown_template():
    data = pdf_book.build_puzzle_book(_batch(1, template="Fancy"))
    assert _page_count(data) == 2
