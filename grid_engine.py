from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import List, Tuple, Optional, Literal, Sequence

# Grid side length used by the renderer pages (N x N)
GRID_SIZE = 20
MAX_ATTEMPTS_PER_WORD = 100

# 8 compass directions for placement (row delta, col delta)
DIR_VECTORS = {
    "E":  (0, 1),
    "W":  (0, -1),
    "N":  (-1, 0),
    "S":  (1, 0),
    "NE": (-1, 1),
    "SE": (1, 1),
    "SW": (1, -1),
    "NW": (-1, -1),
}

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


# -----------------------------------------------------------------------------
# Simple logger hook
# -----------------------------------------------------------------------------
# app.py can call set_logger(my_ui_logger). If you do nothing, we print().
_LOGGER = None  # type: Optional[callable]


def set_logger(fn) -> None:
    """Allow the UI to inject a logger callback: fn(text: str)."""
    global _LOGGER
    _LOGGER = fn


def _log(msg: str) -> None:
    """Log to UI if available; otherwise print. Keep messages simple."""
    if _LOGGER:
        try:
            _LOGGER(msg)
            return
        except Exception:
            pass
    print(msg)


# -----------------------------------------------------------------------------
# Data shapes
# -----------------------------------------------------------------------------
Direction = Literal["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
Grid = List[List[Optional[str]]]
SolutionMask = List[List[bool]]


@dataclass
class PlacedWord:
    """One placed word with its path in the grid."""
    text: str
    start: Tuple[int, int]  # (row, col)
    end: Tuple[int, int]
    direction: Direction
    cells: List[Tuple[int, int]]  # all grid coordinates used


@dataclass
class WordSearchResult:
    """
    The outcome of one placement run. This is what the assembler needs.
    """
    grid: List[List[str]]                    # final grid of letters (no empty cells)
    solution: SolutionMask                   # True where a placed word letter sits
    placed_words: List[PlacedWord]           # in placement order (longest first)
    dropped: List[str] = field(default_factory=list)  # words that did not fit anywhere


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
_NORMALIZE_RE = re.compile(r"[A-Za-z0-9]+")


def _normalize_for_grid(text: str) -> str:
    """
    Remove spaces and punctuation so only letters/numbers remain.
    Uppercase so it looks consistent in the grid.
    """
    if not text:
        return ""
    parts = _NORMALIZE_RE.findall(text.upper())
    return "".join(parts)


def _empty_grid(size: int) -> Grid:
    return [[None for _ in range(size)] for _ in range(size)]


def _empty_mask(size: int) -> SolutionMask:
    return [[False for _ in range(size)] for _ in range(size)]


def _rand_letter(rng: random.Random) -> str:
    # Uppercase A–Z
    return ALPHABET[rng.randrange(len(ALPHABET))]


def can_place_word(grid: Grid, r: int, c: int, direction: Direction, word_norm: str) -> bool:
    """Check bounds and compatibility (allow crossing on identical letters)."""
    dr, dc = DIR_VECTORS[direction]
    H = len(grid)
    W = len(grid[0]) if H else 0
    if r < 0 or r >= H or c < 0 or c >= W:
        return False
    nr = r + dr * (len(word_norm) - 1)
    nc = c + dc * (len(word_norm) - 1)
    if nr < 0 or nr >= H or nc < 0 or nc >= W:
        return False

    rr, cc = r, c
    for ch in word_norm:
        cell = grid[rr][cc]
        if cell is not None and cell != ch:
            return False
        rr += dr
        cc += dc
    return True


def _place_one_word(grid: Grid, used_mask: SolutionMask, r: int, c: int,
                    direction: Direction, word_norm: str) -> PlacedWord:
    """Write the word on the grid and mask; return its PlacedWord record."""
    dr, dc = DIR_VECTORS[direction]
    cells = []
    rr, cc = r, c
    for ch in word_norm:
        grid[rr][cc] = ch
        used_mask[rr][cc] = True
        cells.append((rr, cc))
        rr += dr
        cc += dc
    return PlacedWord(text=word_norm, start=cells[0], end=cells[-1], direction=direction, cells=cells)


# -----------------------------------------------------------------------------
# Placement strategies
# -----------------------------------------------------------------------------
class RandomizedPlacement:
    """
    Random direction + random anchor, up to max_attempts tries.
    Every anchor in the grid is a candidate; out-of-bounds ones just fail the check.
    """

    def __init__(self, rng: random.Random, max_attempts: int = MAX_ATTEMPTS_PER_WORD):
        self.rng = rng
        self.max_attempts = max_attempts
        self._dirs: List[Direction] = list(DIR_VECTORS)

    def find(self, grid: Grid, word_norm: str) -> Optional[Tuple[int, int, Direction]]:
        size = len(grid)
        for _ in range(self.max_attempts):
            d = self.rng.choice(self._dirs)
            r = self.rng.randrange(size)
            c = self.rng.randrange(size)
            if can_place_word(grid, r, c, d, word_norm):
                return r, c, d
        return None


class ExhaustiveScanPlacement:
    """Row-major scan of every start cell, left-to-right (E) only."""

    direction: Direction = "E"

    def find(self, grid: Grid, word_norm: str) -> Optional[Tuple[int, int, Direction]]:
        size = len(grid)
        for r in range(size):
            for c in range(size - len(word_norm) + 1):
                if can_place_word(grid, r, c, self.direction, word_norm):
                    return r, c, self.direction
        return None


# -----------------------------------------------------------------------------
# High-level API
# -----------------------------------------------------------------------------
def fill_grid(grid: Grid, rng: random.Random) -> List[List[str]]:
    """
    Fill None cells with random uppercase letters.
    """
    out: List[List[str]] = []
    for row in grid:
        new_row = []
        for cell in row:
            new_row.append(cell if cell else _rand_letter(rng))
        out.append(new_row)
    return out


def place_words(
    words: Sequence[str],
    size: int = GRID_SIZE,
    rng: Optional[random.Random] = None,
    max_attempts_per_word: int = MAX_ATTEMPTS_PER_WORD,
) -> WordSearchResult:
    """
    Build one word search grid:
      - longest words first (stable for equal lengths), while the grid is sparse
      - randomized placement in 8 directions, then a horizontal row-major scan
      - words that fit nowhere are dropped and reported in result.dropped
      - every leftover cell gets a random A–Z letter
    """
    if not words:
        raise ValueError("place_words needs at least one word")
    if size <= 0:
        raise ValueError(f"grid size must be positive, got {size}")

    _rng = rng if rng is not None else random.Random()
    grid = _empty_grid(size)
    used_mask = _empty_mask(size)

    strategies = (
        RandomizedPlacement(_rng, max_attempts_per_word),
        ExhaustiveScanPlacement(),
    )

    placed: List[PlacedWord] = []
    dropped: List[str] = []

    for word in sorted(words, key=len, reverse=True):
        word_norm = _normalize_for_grid(word)
        if not word_norm:
            dropped.append(word)
            continue

        spot = None
        for strategy in strategies:
            spot = strategy.find(grid, word_norm)
            if spot is not None:
                break

        if spot is None:
            _log(f"place: could not place '{word_norm}' in {size}x{size}, skipping it")
            dropped.append(word)
            continue

        r, c, d = spot
        placed.append(_place_one_word(grid, used_mask, r, c, d, word_norm))

    letters = fill_grid(grid, _rng)
    return WordSearchResult(grid=letters, solution=used_mask, placed_words=placed, dropped=dropped)


def render_preview_ascii(grid: List[List[str]], mask: Optional[List[List[bool]]] = None) -> str:
    """
    Plain-text grid, one line per row. With a mask, cells outside it print
    as "." so only the hidden words remain (a text answer key).
    """
    lines = []
    for r, row in enumerate(grid):
        cells = []
        for c, ch in enumerate(row):
            if not ch or (mask is not None and not mask[r][c]):
                cells.append(".")
            else:
                cells.append(ch)
        lines.append(" ".join(cells))
    return "\n".join(lines)
