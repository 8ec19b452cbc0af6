"""Puzzle assembly tests: validation, slicing, placeholder and batch flow."""

import random

import pytest

import puzzle_assembler as asm
import word_source as ws


FAST = ws.AcquisitionSettings(retry_delay=0, max_retries=3)


class ListClient:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = 0

    def complete(self, request):
        self.calls += 1
        return self.replies.pop(0) if self.replies else None


@pytest.mark.parametrize("theme, puzzles, per_puzzle", [
    ("", 1, 5),
    ("  ", 1, 5),
    ("Animals", 0, 5),
    ("Animals", 201, 5),
    ("Animals", 1, 0),
    ("Animals", 1, 21),
])
def test_validate_request_rejects_bad_input(theme, puzzles, per_puzzle):
    with pytest.raises(ValueError):
        asm.validate_request(theme, puzzles, per_puzzle)


def test_validate_request_trims_theme():
    assert asm.validate_request("  Ocean ", 3, 9) == "Ocean"


def test_assemble_slices_contiguously():
    words = ["dog", "cat", "owl", "emu", "bee", "ant"]
    puzzles = asm.assemble_puzzles(words, 3, 2, rng=random.Random(4))
    assert [p.id for p in puzzles] == [1, 2, 3]
    assert [set(p.words) for p in puzzles] == [{"dog", "cat"}, {"owl", "emu"}, {"bee", "ant"}]
    assert all(p.dropped_count == 0 for p in puzzles)


def test_puzzles_beyond_word_supply_get_placeholder():
    puzzles = asm.assemble_puzzles(["dog", "cat", "owl"], 3, 2, rng=random.Random(1))
    assert set(puzzles[1].words) == {"owl"}
    assert puzzles[2].words == [asm.PLACEHOLDER_WORD]


def test_puzzle_words_are_exactly_the_placed_words():
    puzzle = asm.build_puzzle(1, ["elephant", "cat"], size=4, rng=random.Random(0))
    assert puzzle.words == ["cat"]
    assert puzzle.dropped == ["elephant"]
    assert puzzle.dropped_count == 1
    assert len(puzzle.placed_words) == len(puzzle.words)


def test_puzzle_words_follow_placement_order():
    puzzle = asm.build_puzzle(1, ["ant", "giraffe", "zebra"], rng=random.Random(5))
    assert puzzle.words == ["giraffe", "zebra", "ant"]
    assert [pw.text for pw in puzzle.placed_words] == ["GIRAFFE", "ZEBRA", "ANT"]


def test_generate_puzzle_set_requests_total_and_slices():
    client = ListClient(['["dog","cat","owl","emu"]'])
    batch = asm.generate_puzzle_set("Animals", 2, 2, template="Theme 3 (Table)",
                                    client=client, settings=FAST, rng=random.Random(9))
    assert batch.theme == "Animals"
    assert batch.template == "Theme 3 (Table)"
    assert batch.warning is None
    assert batch.total_words == 4
    assert [set(p.words) for p in batch.puzzles] == [{"dog", "cat"}, {"owl", "emu"}]
    assert client.calls == 1


def test_generate_puzzle_set_passes_shortfall_warning():
    client = ListClient(['["dog","cat","owl"]'] * 3)
    batch = asm.generate_puzzle_set("Animals", 2, 2, client=client, settings=FAST,
                                    rng=random.Random(9))
    assert batch.warning.startswith("AI could only generate 3 unique words out of 4")
    assert set(batch.puzzles[1].words) == {"owl"}


def test_generate_puzzle_set_without_words_raises():
    client = ListClient([])
    with pytest.raises(asm.NoWordsError) as exc_info:
        asm.generate_puzzle_set("Animals", 2, 5, client=client, settings=FAST)
    assert exc_info.value.warning == "AI did not return a valid response on retry 3."


def test_generate_puzzle_set_validates_before_acquiring():
    client = ListClient(['["dog"]'])
    with pytest.raises(ValueError):
        asm.generate_puzzle_set("Animals", 0, 5, client=client, settings=FAST)
    assert client.calls == 0


def test_non_latin_and_ligature_words_read_back_from_grid():
    client = ListClient(['["œuf", "smørrebrød", "γάτα"]'])
    settings = ws.AcquisitionSettings(retry_delay=0, max_retries=1)
    batch = asm.generate_puzzle_set("Food", 1, 3, client=client, settings=settings,
                                    rng=random.Random(2))
    puzzle = batch.puzzles[0]
    assert sorted(puzzle.words) == ["oeuf", "smorrebrod"]
    assert puzzle.dropped == []
    for pw in puzzle.placed_words:
        assert "".join(puzzle.grid[r][c] for r, c in pw.cells) == pw.text
        assert pw.text.lower() in puzzle.words
