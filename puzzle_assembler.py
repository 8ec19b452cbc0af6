from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Literal, Sequence

import grid_engine as eng
from word_source import AcquisitionSettings, acquire_words

MAX_PUZZLES = 200
MAX_WORDS_PER_PUZZLE = 20
PLACEHOLDER_WORD = "puzzle"

# Style selector handed through to the renderer untouched
Template = Literal["Theme 1 (Checkboxes)", "Theme 2 (Dashed)", "Theme 3 (Table)"]
TEMPLATES: List[str] = ["Theme 1 (Checkboxes)", "Theme 2 (Dashed)", "Theme 3 (Table)"]


class NoWordsError(RuntimeError):
    """Acquisition returned nothing at all, so no puzzle can be built."""

    def __init__(self, message: str, warning: Optional[str] = None):
        super().__init__(message)
        self.warning = warning


@dataclass
class Puzzle:
    """
    One puzzle as the renderer sees it.
    `words` lists only the words that made it into the grid.
    """
    id: int
    words: List[str]
    grid: List[List[str]]
    solution: List[List[bool]]
    placed_words: List[eng.PlacedWord] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


@dataclass
class PuzzleBatch:
    theme: str
    template: str
    puzzles: List[Puzzle]
    warning: Optional[str] = None
    total_words: int = 0

    @property
    def dropped_count(self) -> int:
        return sum(p.dropped_count for p in self.puzzles)


def validate_request(theme: str, num_puzzles: int, words_per_puzzle: int) -> str:
    """Reject bad form input before anything else runs. Returns the trimmed theme."""
    theme = (theme or "").strip()
    if not theme:
        raise ValueError("Theme is required")
    if not 1 <= int(num_puzzles) <= MAX_PUZZLES:
        raise ValueError(f"Number of puzzles must be between 1 and {MAX_PUZZLES}")
    if not 1 <= int(words_per_puzzle) <= MAX_WORDS_PER_PUZZLE:
        raise ValueError(f"Words per puzzle must be between 1 and {MAX_WORDS_PER_PUZZLE}")
    return theme


def build_puzzle(puzzle_id: int, words: Sequence[str], size: int = eng.GRID_SIZE,
                 rng: Optional[random.Random] = None) -> Puzzle:
    """Place one slice of words. An empty slice gets the placeholder word."""
    chosen = list(words) or [PLACEHOLDER_WORD]
    res = eng.place_words(chosen, size=size, rng=rng)

    # Map grid form back to the spelling we were given (first occurrence wins)
    disp_map: dict[str, str] = {}
    for w in chosen:
        n = eng._normalize_for_grid(w)
        if n and n not in disp_map:
            disp_map[n] = w

    placed_display = [disp_map.get(pw.text, pw.text.lower()) for pw in res.placed_words]
    if res.dropped:
        eng._log(f"[puzzle {puzzle_id}] dropped {len(res.dropped)} word(s): {', '.join(res.dropped)}")

    return Puzzle(
        id=puzzle_id,
        words=placed_display,
        grid=res.grid,
        solution=res.solution,
        placed_words=res.placed_words,
        dropped=list(res.dropped),
    )


def assemble_puzzles(words: Sequence[str], num_puzzles: int, words_per_puzzle: int,
                     size: int = eng.GRID_SIZE, rng: Optional[random.Random] = None) -> List[Puzzle]:
    """
    Slice the flat word list contiguously: puzzle i gets
    words[i*k:(i+1)*k]. Puzzles past the end of the list get the placeholder.
    """
    _rng = rng if rng is not None else random.Random()
    word_list = list(words)
    puzzles: List[Puzzle] = []
    for i in range(num_puzzles):
        chunk = word_list[i * words_per_puzzle:(i + 1) * words_per_puzzle]
        puzzles.append(build_puzzle(i + 1, chunk, size=size, rng=_rng))
    return puzzles


def generate_puzzle_set(
    theme: str,
    num_puzzles: int,
    words_per_puzzle: int,
    template: str = TEMPLATES[0],
    client=None,
    settings: Optional[AcquisitionSettings] = None,
    size: int = eng.GRID_SIZE,
    rng: Optional[random.Random] = None,
    cancel: Optional[threading.Event] = None,
) -> PuzzleBatch:
    """
    Orchestrator:
      - validate form input
      - acquire puzzles * words_per_puzzle words in one run
      - slice and place one grid per puzzle
    Raises NoWordsError when acquisition produced no words at all.
    """
    theme = validate_request(theme, num_puzzles, words_per_puzzle)
    target = int(num_puzzles) * int(words_per_puzzle)
    eng._log(f"[batch] requesting {target} words for theme \"{theme}\"")

    acquired = acquire_words(theme, target, client=client, settings=settings, cancel=cancel)
    if not acquired.words:
        raise NoWordsError(
            "No words were generated. Please try a different theme or adjust settings.",
            warning=acquired.warning,
        )

    puzzles = assemble_puzzles(acquired.words, int(num_puzzles), int(words_per_puzzle),
                               size=size, rng=rng)
    return PuzzleBatch(
        theme=theme,
        template=template,
        puzzles=puzzles,
        warning=acquired.warning,
        total_words=len(acquired.words),
    )
