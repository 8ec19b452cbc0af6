from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, List, Tuple

# Import shapes for type hints only
from puzzle_assembler import Puzzle, TEMPLATES


# -----------------------------------------------------------------------------
# Simple logger hook (optional; mirrors grid_engine)
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


@dataclass
class Appearance:
    """
    Visual settings used by the SVG renderer.
    Keep this in sync with your UI fields.
    """
    # Grid
    cell_bg_color: str = "#FFFFFF"
    cell_line_color: str = "#000000"
    cell_line_thickness: float = 1.0

    # Letters
    grid_font_family: str = "Arial"
    grid_font_size: int = 16
    grid_font_bold: bool = False
    grid_font_color: str = "#000000"

    # Title
    title_font_size: int = 24
    title_font_color: str = "#000000"

    # Word list
    list_font_family: str = "Arial"
    list_font_size: int = 14
    list_font_color: str = "#000000"
    list_columns: int = 3
    list_uppercase: bool = True
    accent_color: str = "#555555"       # checkboxes, dashed frame, table rules

    # --- Solution marking options ---
    solution_mark_style: str = "highlight"     # "highlight" | "circle"
    solution_mark_color: str = "#D94242"
    solution_circle_width: float = 2.0
    solution_circle_band_frac: float = 0.55    # fraction of cell height
    solution_circle_pad_len: float = 2.0       # extra length at each end (px)


# -----------------------------------------------------------------------------
# Tiny helper to build safe SVG text (no external lib, very basic)
# -----------------------------------------------------------------------------
def _esc(s: str) -> str:
    return (
        str(s).replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _resolve_template(template: Optional[str]) -> str:
    if template in TEMPLATES:
        return template
    if template:
        _log(f"render: unknown template '{template}', using '{TEMPLATES[0]}'")
    return TEMPLATES[0]


@dataclass
class _Layout:
    cell: int
    pad: int
    title_h: int
    grid_x: int
    grid_y: int
    grid_w: int
    grid_h: int
    list_y: int
    line_h: int
    list_rows: int
    total_w: int
    total_h: int


def _layout(puzzle: Puzzle, appearance: Appearance, template: str) -> _Layout:
    rows = len(puzzle.grid)
    cols = len(puzzle.grid[0]) if rows else 0

    # Size math: cell becomes font_size * 1.6, with some padding
    cell = max(12, int(appearance.grid_font_size * 1.6))
    pad = int(cell * 0.8)
    title_h = int(appearance.title_font_size * 1.8)
    grid_w = cols * cell
    grid_h = rows * cell

    col_count = max(1, int(appearance.list_columns))
    line_h = max(12, int(appearance.list_font_size * 1.8))
    list_rows = (len(puzzle.words) + col_count - 1) // col_count
    list_h = list_rows * line_h + pad
    if template == "Theme 3 (Table)":
        list_h += line_h  # header row

    list_y = pad + title_h + grid_h + pad
    return _Layout(
        cell=cell, pad=pad, title_h=title_h,
        grid_x=pad, grid_y=pad + title_h, grid_w=grid_w, grid_h=grid_h,
        list_y=list_y, line_h=line_h, list_rows=list_rows,
        total_w=grid_w + pad * 2, total_h=list_y + list_h + pad,
    )


def _svg_open(lay: _Layout) -> str:
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" '
        f'width="{lay.total_w}" height="{lay.total_h}" '
        f'viewBox="0 0 {lay.total_w} {lay.total_h}">'
    )


def _title(text: str, lay: _Layout, appearance: Appearance) -> str:
    x = lay.total_w // 2
    y = lay.pad + appearance.title_font_size
    return (
        f'<text x="{x}" y="{y}" text-anchor="middle" font-family="{_esc(appearance.list_font_family)}" '
        f'font-size="{appearance.title_font_size}" font-weight="bold" '
        f'fill="{appearance.title_font_color}">{_esc(text)}</text>'
    )


def _grid_lines(lay: _Layout, rows: int, cols: int, appearance: Appearance) -> List[str]:
    out = []
    stroke = appearance.cell_line_color
    sw = appearance.cell_line_thickness
    x0, y0 = lay.grid_x, lay.grid_y
    for c in range(cols + 1):
        x = x0 + c * lay.cell
        out.append(f'<line x1="{x}" y1="{y0}" x2="{x}" y2="{y0 + lay.grid_h}" stroke="{stroke}" stroke-width="{sw}" />')
    for r in range(rows + 1):
        y = y0 + r * lay.cell
        out.append(f'<line x1="{x0}" y1="{y}" x2="{x0 + lay.grid_w}" y2="{y}" stroke="{stroke}" stroke-width="{sw}" />')
    return out


def _letters(grid: List[List[str]], lay: _Layout, appearance: Appearance) -> List[str]:
    font_weight = "bold" if appearance.grid_font_bold else "normal"
    out = [
        f'<g font-family="{_esc(appearance.grid_font_family)}" font-size="{appearance.grid_font_size}" '
        f'font-weight="{font_weight}" fill="{appearance.grid_font_color}">'
    ]
    # Center letters in cells
    txt_dy = int(appearance.grid_font_size * 0.35)
    for r, row in enumerate(grid):
        for c, ch in enumerate(row):
            x = lay.grid_x + c * lay.cell + lay.cell // 2
            y = lay.grid_y + r * lay.cell + lay.cell // 2 + txt_dy
            out.append(f'<text x="{x}" y="{y}" text-anchor="middle">{_esc(ch)}</text>')
    out.append('</g>')
    return out


def _word_list(words: List[str], lay: _Layout, appearance: Appearance, template: str) -> List[str]:
    """
    Word list under the grid, styled by template:
      - Theme 1 (Checkboxes): a small box before every word
      - Theme 2 (Dashed): dashed frame around the whole list
      - Theme 3 (Table): words in a ruled table with a header row
    """
    if not words:
        return []
    col_count = max(1, int(appearance.list_columns))
    col_w = lay.grid_w // col_count
    fs = appearance.list_font_size
    accent = appearance.accent_color
    labels = [w.upper() if appearance.list_uppercase else w for w in words]

    out: List[str] = []
    top = lay.list_y
    if template == "Theme 3 (Table)":
        n_rows = lay.list_rows + 1
        table_h = n_rows * lay.line_h
        out.append(
            f'<rect x="{lay.grid_x}" y="{top}" width="{lay.grid_w}" height="{table_h}" '
            f'fill="none" stroke="{accent}" stroke-width="1" />'
        )
        for i in range(1, n_rows):
            y = top + i * lay.line_h
            out.append(f'<line x1="{lay.grid_x}" y1="{y}" x2="{lay.grid_x + lay.grid_w}" y2="{y}" stroke="{accent}" stroke-width="0.5" />')
        for i in range(1, col_count):
            x = lay.grid_x + i * col_w
            out.append(f'<line x1="{x}" y1="{top}" x2="{x}" y2="{top + table_h}" stroke="{accent}" stroke-width="0.5" />')
        out.append(
            f'<text x="{lay.grid_x + lay.grid_w // 2}" y="{top + int(lay.line_h * 0.7)}" text-anchor="middle" '
            f'font-family="{_esc(appearance.list_font_family)}" font-size="{fs}" font-weight="bold" '
            f'fill="{appearance.list_font_color}">WORDS TO FIND</text>'
        )
        top += lay.line_h
    elif template == "Theme 2 (Dashed)":
        frame_h = lay.list_rows * lay.line_h + lay.pad // 2
        out.append(
            f'<rect x="{lay.grid_x}" y="{top - lay.pad // 4}" width="{lay.grid_w}" height="{frame_h}" '
            f'fill="none" stroke="{accent}" stroke-width="1.5" stroke-dasharray="6 4" rx="6" ry="6" />'
        )

    out.append(
        f'<g font-family="{_esc(appearance.list_font_family)}" font-size="{fs}" '
        f'fill="{appearance.list_font_color}">'
    )
    # Column-major layout
    per_col = max(1, lay.list_rows)
    box = int(fs * 0.8)
    for i, label in enumerate(labels):
        col_idx = i // per_col
        row_idx = i % per_col
        tx = lay.grid_x + col_idx * col_w + 8
        ty = top + row_idx * lay.line_h + int(lay.line_h * 0.7)
        if template == "Theme 1 (Checkboxes)":
            out.append(
                f'<rect x="{tx}" y="{ty - box}" width="{box}" height="{box}" '
                f'fill="none" stroke="{accent}" stroke-width="1" />'
            )
            tx += box + 6
        out.append(f'<text x="{tx}" y="{ty}" text-anchor="start">{_esc(label)}</text>')
    out.append('</g>')
    return out


def _cell_center(lay: _Layout, rc: Tuple[int, int]) -> Tuple[float, float]:
    r, c = rc
    return lay.grid_x + c * lay.cell + 0.5 * lay.cell, lay.grid_y + r * lay.cell + 0.5 * lay.cell


# -----------------------------------------------------------------------------
# Core renderers
# -----------------------------------------------------------------------------
def render_puzzle_svg(puzzle: Puzzle, theme: str, template: Optional[str] = None,
                      appearance: Optional[Appearance] = None) -> str:
    """
    Puzzle page: title, letter grid, word list styled by template.
    """
    appearance = appearance or Appearance()
    template = _resolve_template(template)
    lay = _layout(puzzle, appearance, template)
    rows = len(puzzle.grid)
    cols = len(puzzle.grid[0]) if rows else 0

    out = [_svg_open(lay)]
    out.append(f'<rect x="0" y="0" width="{lay.total_w}" height="{lay.total_h}" fill="#FFFFFF" />')
    out.append(_title(f"{theme} - Puzzle {puzzle.id}", lay, appearance))
    out.append(
        f'<rect x="{lay.grid_x}" y="{lay.grid_y}" width="{lay.grid_w}" height="{lay.grid_h}" '
        f'fill="{appearance.cell_bg_color}" stroke="none" />'
    )
    out.extend(_grid_lines(lay, rows, cols, appearance))
    out.extend(_letters(puzzle.grid, lay, appearance))
    out.extend(_word_list(puzzle.words, lay, appearance, template))
    out.append('</svg>')
    return "\n".join(out)


def render_solution_svg(puzzle: Puzzle, theme: str, template: Optional[str] = None,
                        appearance: Optional[Appearance] = None) -> str:
    """
    Solution SVG:
      - Draw grid + letters like the puzzle.
      - Mark answers with either:
          * "highlight": per-cell rects behind letters, from the solution mask
          * "circle": rotated pill per placed word with semicircular endcaps
    """
    appearance = appearance or Appearance()
    template = _resolve_template(template)
    lay = _layout(puzzle, appearance, template)
    rows = len(puzzle.grid)
    cols = len(puzzle.grid[0]) if rows else 0
    cell = lay.cell

    out = [_svg_open(lay)]
    out.append(f'<rect x="0" y="0" width="{lay.total_w}" height="{lay.total_h}" fill="#FFFFFF" />')
    out.append(_title(f"{theme} - Solution {puzzle.id}", lay, appearance))
    out.append(
        f'<rect x="{lay.grid_x}" y="{lay.grid_y}" width="{lay.grid_w}" height="{lay.grid_h}" '
        f'fill="{appearance.cell_bg_color}" stroke="none" />'
    )

    mark_style = (appearance.solution_mark_style or "highlight").lower()
    color = appearance.solution_mark_color
    if mark_style == "highlight":
        for r in range(rows):
            for c in range(cols):
                if puzzle.solution[r][c]:
                    x = lay.grid_x + c * cell + 1
                    y = lay.grid_y + r * cell + 1
                    out.append(
                        f'<rect x="{x}" y="{y}" width="{cell-2}" height="{cell-2}" '
                        f'fill="{color}" fill-opacity="0.35" stroke="none" class="solution-cell" />'
                    )

    out.extend(_grid_lines(lay, rows, cols, appearance))

    if mark_style == "circle":
        rect_h = max(1.0, appearance.solution_circle_band_frac * cell)
        rx = rect_h * 0.5  # true half-circle endcaps
        for pw in puzzle.placed_words:
            x0, y0 = _cell_center(lay, pw.start)
            x1, y1 = _cell_center(lay, pw.end)
            dx, dy = x1 - x0, y1 - y0
            D = math.hypot(dx, dy)
            ux, uy = (dx / D, dy / D) if D > 1e-6 else (1.0, 0.0)
            # 0.5*cell for axis-aligned; ~0.707*cell for 45°
            ext_each = 0.5 * cell * (abs(ux) + abs(uy)) + appearance.solution_circle_pad_len
            rect_w = D + 2.0 * ext_each
            cx, cy = (x0 + x1) * 0.5, (y0 + y1) * 0.5
            ang = math.degrees(math.atan2(dy, dx)) if D > 1e-6 else 0.0
            out.append(
                f'<rect x="{cx - rect_w * 0.5:.2f}" y="{cy - rect_h * 0.5:.2f}" '
                f'width="{rect_w:.2f}" height="{rect_h:.2f}" '
                f'fill="none" stroke="{color}" stroke-width="{appearance.solution_circle_width:.2f}" '
                f'rx="{rx:.2f}" ry="{rx:.2f}" transform="rotate({ang:.2f} {cx:.2f} {cy:.2f})" />'
            )

    out.extend(_letters(puzzle.grid, lay, appearance))
    out.extend(_word_list(puzzle.words, lay, appearance, template))
    out.append('</svg>')
    return "\n".join(out)
