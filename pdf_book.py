from __future__ import annotations

import io
from typing import List, Optional, Tuple, Union, BinaryIO

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from puzzle_assembler import Puzzle, PuzzleBatch
from svg_renderer import Appearance, _resolve_template


# -----------------------------------------------------------------------------
# Simple logger hook (mirrors grid_engine)
# -----------------------------------------------------------------------------
_LOGGER = None  # type: Optional[callable]


def set_logger(fn) -> None:
    """Allow the UI to inject a logger callback: fn(text: str)."""
    global _LOGGER
    _LOGGER = fn


def _log(msg: str) -> None:
    if _LOGGER:
        try:
            _LOGGER(msg)
            return
        except Exception:
            pass
    print(msg)


# -----------------------------------------------------------------------------
# Page geometry (points)
# -----------------------------------------------------------------------------
MARGIN = 15 * mm
TITLE_GAP = 14 * mm
LIST_GAP = 8 * mm
ROW_H = 7 * mm
HIGHLIGHT = "#FFE08A"


def _grid_box(page_w: float, page_h: float, size: int) -> Tuple[float, float, float]:
    """(origin_x, origin_y, cell) for a square grid under the title, at most 60% of the page."""
    side = min(page_w - 2 * MARGIN, page_h * 0.6)
    cell = side / max(1, size)
    origin_x = (page_w - side) / 2
    origin_y = page_h - MARGIN - TITLE_GAP - side
    return origin_x, origin_y, cell


def _draw_title(c: canvas.Canvas, text: str, page_w: float, page_h: float) -> None:
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(page_w / 2, page_h - MARGIN - 6 * mm, text)


def _draw_grid(c: canvas.Canvas, grid: List[List[str]], origin: Tuple[float, float, float],
               look: Appearance, mask: Optional[List[List[bool]]] = None) -> None:
    ox, oy, cell = origin
    rows = len(grid)
    c.setLineWidth(0.5)
    c.setStrokeColor(HexColor(look.cell_line_color))
    for r in range(rows):
        for col, ch in enumerate(grid[r]):
            # row 0 is the top row of the page
            x = ox + col * cell
            y = oy + (rows - 1 - r) * cell
            if mask is not None and mask[r][col]:
                c.setFillColor(HexColor(HIGHLIGHT))
                c.rect(x, y, cell, cell, stroke=1, fill=1)
            else:
                c.rect(x, y, cell, cell, stroke=1, fill=0)
            if ch:
                c.setFillColor(HexColor(look.grid_font_color))
                c.setFont("Helvetica-Bold" if look.grid_font_bold else "Helvetica", cell * 0.55)
                c.drawCentredString(x + cell / 2, y + cell * 0.3, ch)


def _draw_word_list(c: canvas.Canvas, words: List[str], top: float, page_w: float,
                    look: Appearance, template: str) -> None:
    cols = max(1, look.list_columns)
    width = page_w - 2 * MARGIN
    col_w = width / cols
    n_rows = (len(words) + cols - 1) // cols
    accent = HexColor(look.accent_color)
    c.setStrokeColor(accent)
    c.setLineWidth(0.8)

    if template.startswith("Theme 3"):
        c.setFont("Helvetica-Bold", 11)
        c.setFillColor(HexColor(look.list_font_color))
        c.drawCentredString(page_w / 2, top - ROW_H + 2 * mm, "WORDS TO FIND")
        c.line(MARGIN, top - ROW_H, MARGIN + width, top - ROW_H)
        top -= ROW_H
        for i in range(n_rows + 1):
            c.line(MARGIN, top - i * ROW_H, MARGIN + width, top - i * ROW_H)
        for j in range(cols + 1):
            c.line(MARGIN + j * col_w, top, MARGIN + j * col_w, top - n_rows * ROW_H)
    elif template.startswith("Theme 2"):
        c.setDash(4, 3)
        c.rect(MARGIN, top - n_rows * ROW_H - 2 * mm, width, n_rows * ROW_H + 2 * mm, stroke=1, fill=0)
        c.setDash()

    c.setFont("Helvetica", 11)
    for i, word in enumerate(words):
        r, col = divmod(i, cols)
        x = MARGIN + col * col_w + 3 * mm
        y = top - (r + 1) * ROW_H + 2 * mm
        if template.startswith("Theme 1"):
            c.setStrokeColor(accent)
            c.rect(x, y, 3 * mm, 3 * mm, stroke=1, fill=0)
            x += 5 * mm
        c.setFillColor(HexColor(look.list_font_color))
        c.drawString(x, y, word.upper() if look.list_uppercase else word)


def _puzzle_page(c: canvas.Canvas, puzzle: Puzzle, theme: str, template: str, look: Appearance) -> None:
    page_w, page_h = A4
    origin = _grid_box(page_w, page_h, len(puzzle.grid))
    _draw_title(c, f"{theme} - Puzzle {puzzle.id}", page_w, page_h)
    _draw_grid(c, puzzle.grid, origin, look)
    _draw_word_list(c, puzzle.words, origin[1] - LIST_GAP, page_w, look, template)
    c.showPage()


def _solution_page(c: canvas.Canvas, puzzle: Puzzle, theme: str, look: Appearance) -> None:
    page_w, page_h = A4
    origin = _grid_box(page_w, page_h, len(puzzle.grid))
    _draw_title(c, f"{theme} - Solution {puzzle.id}", page_w, page_h)
    _draw_grid(c, puzzle.grid, origin, look, mask=puzzle.solution)
    c.showPage()


def build_puzzle_book(batch: PuzzleBatch, out: Union[str, BinaryIO, None] = None,
                      appearance: Optional[Appearance] = None) -> bytes:
    """
    One PDF for the whole batch: each puzzle page is followed by its answer page.
    Writes to `out` (path or file object) when given; always returns the PDF bytes.
    """
    look = appearance or Appearance()
    template = _resolve_template(batch.template)
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"{batch.theme} word search")
    for puzzle in batch.puzzles:
        _puzzle_page(c, puzzle, batch.theme, template, look)
        _solution_page(c, puzzle, batch.theme, look)
    c.save()
    data = buf.getvalue()
    _log(f"pdf: {len(batch.puzzles)} puzzle(s), {2 * len(batch.puzzles)} pages, {len(data)} bytes")

    if isinstance(out, str):
        with open(out, "wb") as f:
            f.write(data)
    elif out is not None:
        out.write(data)
    return data
