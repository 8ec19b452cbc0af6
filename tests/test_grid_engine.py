"""Grid placement tests: feasibility, strategies, mask/word consistency."""

import random
import string

import pytest

import grid_engine as eng


def _read_word(grid, pw):
    dr, dc = eng.DIR_VECTORS[pw.direction]
    r, c = pw.start
    letters = []
    for _ in range(len(pw.text)):
        letters.append(grid[r][c])
        r += dr
        c += dc
    return "".join(letters)


def _true_cells(mask):
    return {(r, c) for r, row in enumerate(mask) for c, v in enumerate(row) if v}


# =============================================================================
# Feasibility predicate
# =============================================================================


def test_can_place_word_in_empty_grid():
    grid = eng._empty_grid(5)
    assert eng.can_place_word(grid, 0, 0, "E", "CAT")
    assert eng.can_place_word(grid, 4, 4, "NW", "CAT")


def test_can_place_word_rejects_out_of_bounds():
    grid = eng._empty_grid(5)
    assert not eng.can_place_word(grid, 0, 3, "E", "CAT")
    assert not eng.can_place_word(grid, 1, 0, "N", "CAT")
    assert not eng.can_place_word(grid, 5, 0, "E", "CAT")


def test_can_place_word_allows_matching_crossing_only():
    grid = eng._empty_grid(5)
    mask = eng._empty_mask(5)
    eng._place_one_word(grid, mask, 0, 0, "E", "CAT")
    # shares the A at (0, 1)
    assert eng.can_place_word(grid, 0, 1, "S", "ANT")
    # would overwrite the C with a D
    assert not eng.can_place_word(grid, 0, 0, "S", "DOG")


def test_place_one_word_records_start_end_and_mask():
    grid = eng._empty_grid(6)
    mask = eng._empty_mask(6)
    pw = eng._place_one_word(grid, mask, 5, 0, "NE", "OWL")
    assert pw.start == (5, 0)
    assert pw.end == (3, 2)
    assert pw.cells == [(5, 0), (4, 1), (3, 2)]
    assert _true_cells(mask) == set(pw.cells)
    assert _read_word(grid, pw) == "OWL"


# =============================================================================
# Strategies
# =============================================================================


def test_exhaustive_scan_takes_first_row_major_horizontal_slot():
    grid = eng._empty_grid(4)
    mask = eng._empty_mask(4)
    eng._place_one_word(grid, mask, 0, 0, "E", "ZZZZ")
    assert eng.ExhaustiveScanPlacement().find(grid, "DOG") == (1, 0, "E")


def test_exhaustive_scan_returns_none_when_word_too_long():
    grid = eng._empty_grid(3)
    assert eng.ExhaustiveScanPlacement().find(grid, "ELEPHANT") is None


def test_randomized_placement_with_zero_attempts_finds_nothing():
    grid = eng._empty_grid(10)
    assert eng.RandomizedPlacement(random.Random(1), max_attempts=0).find(grid, "CAT") is None


# =============================================================================
# place_words
# =============================================================================


def test_single_word_cat_is_placed_contiguously():
    for seed in range(20):
        res = eng.place_words(["cat"], rng=random.Random(seed))
        assert len(res.placed_words) == 1
        pw = res.placed_words[0]
        assert pw.direction in eng.DIR_VECTORS
        assert _read_word(res.grid, pw) == "CAT"
        dr, dc = eng.DIR_VECTORS[pw.direction]
        assert pw.end == (pw.start[0] + 2 * dr, pw.start[1] + 2 * dc)


def test_wolf_owl_bee_scenario():
    res = eng.place_words(["wolf", "owl", "bee"], rng=random.Random(7))
    assert res.dropped == []
    assert {pw.text for pw in res.placed_words} == {"WOLF", "OWL", "BEE"}
    for row in res.grid:
        assert len(row) == eng.GRID_SIZE
        for ch in row:
            assert ch in string.ascii_uppercase
    for pw in res.placed_words:
        assert _read_word(res.grid, pw) == pw.text

    all_cells = [cell for pw in res.placed_words for cell in pw.cells]
    shared = len(all_cells) - len(set(all_cells))
    assert len(_true_cells(res.solution)) == len("wolf") + len("owl") + len("bee") - shared


@pytest.mark.parametrize("seed", range(10))
def test_mask_matches_union_of_placed_cells(seed):
    words = ["elephant", "giraffe", "zebra", "lion", "tiger", "monkey", "hippo",
             "rhino", "panda", "koala", "otter", "beaver"]
    res = eng.place_words(words, rng=random.Random(seed))
    union = set()
    for pw in res.placed_words:
        assert _read_word(res.grid, pw) == pw.text
        union.update(pw.cells)
    assert _true_cells(res.solution) == union
    assert len(res.placed_words) + len(res.dropped) == len(words)


def test_words_are_attempted_longest_first_with_stable_ties():
    words = ["ant", "bee", "giraffe", "cat", "zebra"]
    res = eng.place_words(words, rng=random.Random(3))
    assert [pw.text for pw in res.placed_words] == ["GIRAFFE", "ZEBRA", "ANT", "BEE", "CAT"]


def test_fallback_scan_used_when_random_attempts_exhausted():
    res = eng.place_words(["dog"], size=5, rng=random.Random(0), max_attempts_per_word=0)
    pw = res.placed_words[0]
    assert (pw.start, pw.end, pw.direction) == ((0, 0), (0, 2), "E")


def test_unplaceable_word_is_dropped_and_grid_still_filled():
    res = eng.place_words(["elephant", "cat"], size=4, rng=random.Random(2))
    assert res.dropped == ["elephant"]
    assert [pw.text for pw in res.placed_words] == ["CAT"]
    assert all(ch in string.ascii_uppercase for row in res.grid for ch in row)
    assert len(_true_cells(res.solution)) == 3


def test_place_words_requires_words():
    with pytest.raises(ValueError):
        eng.place_words([])


def test_render_preview_ascii_has_one_line_per_row():
    res = eng.place_words(["cat"], size=5, rng=random.Random(1))
    lines = eng.render_preview_ascii(res.grid).splitlines()
    assert len(lines) == 5
    assert all(len(line.split()) == 5 for line in lines)


def test_render_preview_ascii_with_mask_shows_only_hidden_words():
    res = eng.place_words(["cat"], size=5, rng=random.Random(1))
    text = eng.render_preview_ascii(res.grid, res.solution)
    letters = [ch for ch in text.split() if ch != "."]
    assert sorted(letters) == sorted("CAT")
