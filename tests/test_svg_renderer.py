"""SVG page rendering tests for the three word list templates."""

import random

import puzzle_assembler as asm
import svg_renderer as svg


def _puzzle():
    return asm.build_puzzle(3, ["wolf", "owl", "bee"], size=10, rng=random.Random(2))


def test_puzzle_page_has_title_grid_and_words():
    out = svg.render_puzzle_svg(_puzzle(), "Forest")
    assert out.startswith("<svg")
    assert out.endswith("</svg>")
    assert "Forest - Puzzle 3" in out
    assert out.count('text-anchor="middle">') >= 100
    for word in ("WOLF", "OWL", "BEE"):
        assert f">{word}</text>" in out


def test_checkbox_template_draws_one_box_per_word():
    p = _puzzle()
    out = svg.render_puzzle_svg(p, "Forest", "Theme 1 (Checkboxes)")
    box = int(svg.Appearance().list_font_size * 0.8)
    assert out.count(f'width="{box}" height="{box}"') == len(p.words)


def test_dashed_template_draws_dashed_frame():
    out = svg.render_puzzle_svg(_puzzle(), "Forest", "Theme 2 (Dashed)")
    assert "stroke-dasharray" in out


def test_table_template_has_header_row():
    out = svg.render_puzzle_svg(_puzzle(), "Forest", "Theme 3 (Table)")
    assert "WORDS TO FIND" in out


def test_unknown_template_falls_back_to_checkboxes():
    p = _puzzle()
    assert svg.render_puzzle_svg(p, "Forest", "Fancy") == svg.render_puzzle_svg(p, "Forest", "Theme 1 (Checkboxes)")


def test_solution_highlights_every_mask_cell():
    p = _puzzle()
    out = svg.render_solution_svg(p, "Forest")
    marked = sum(v for row in p.solution for v in row)
    assert "Forest - Solution 3" in out
    assert out.count('class="solution-cell"') == marked


def test_solution_circle_style_draws_one_pill_per_word():
    p = _puzzle()
    look = svg.Appearance(solution_mark_style="circle")
    out = svg.render_solution_svg(p, "Forest", appearance=look)
    assert out.count("rotate(") == len(p.placed_words)
    assert 'class="solution-cell"' not in out
