import io, zipfile
import streamlit as st
from pathlib import Path



def load_css(path: str | Path) -> None:
    css_path = Path(path)
    if not css_path.exists():
        return
    css = css_path.read_text(encoding="utf-8")
    st.markdown(f"<style>{css}</style>", unsafe_allow_html=True)



# ---- preview helper: scale an SVG to a target pixel width (keeps aspect) ----

def _scale_svg_for_preview(svg_text: str, target_width_px: int) -> tuple[str, int]:
    """
    Returns (scaled_svg_text, new_height_px).
    Only used for UI preview; original SVGs stay full size for ZIP/PNG/PDF.
    """
    import re
    m = re.search(r'viewBox="0\s+0\s+([\d.]+)\s+([\d.]+)"', svg_text)
    if not m:
        return svg_text, 600  # fallback
    vw, vh = float(m.group(1)), float(m.group(2))
    scale = max(0.05, float(target_width_px) / max(1.0, vw))
    new_h = max(50, int(round(vh * scale)))

    # rewrite width/height only on the <svg ...> tag
    s = re.sub(r'(<svg\b[^>]*\bwidth=")[^"]+(")',  rf'\g<1>{int(target_width_px)}\g<2>', svg_text, count=1)
    s = re.sub(r'(<svg\b[^>]*\bheight=")[^"]+(")', rf'\g<1>{new_h}\g<2>',            s, count=1)
    return s, new_h


st.set_page_config(page_title="Word Search Generator", layout="wide")
# If styles.css is next to app.py:
load_css(Path(__file__).with_name("styles.css"))
st.title("AI Word Search Puzzle Generator")
st.caption(
    "Enter a theme, number of puzzles, and number of words per puzzle. "
    "Generate and download puzzles with their answers."
)


# --- Controls in the sidebar (clean + compact) ---
with st.sidebar:
    tab_create, tab_settings = st.tabs(["Create Puzzles", "Settings"])

    # ---------------------------
    # TAB 1: Create Puzzles
    # ---------------------------
    with tab_create:
        theme = st.text_input("Theme", "", placeholder="e.g., Animals, Sports, Food, Science, Space, Ocean")

        r1c1, r1c2 = st.columns(2)
        with r1c1:
            n_puzzles = st.number_input("# puzzles", 1, 200, 5, format="%d")
        with r1c2:
            words_per_puzzle = st.number_input("# words per puzzle", 5, 20, 9, format="%d")

        template = st.selectbox(
            "PDF Template",
            ["Theme 1 (Checkboxes)", "Theme 2 (Dashed)", "Theme 3 (Table)"],
        )
        seed = st.text_input("Seed (optional, grid layout only)", "")

        go = st.button("Generate", type="primary", use_container_width=True, disabled=not theme.strip())

    # ---------------------------
    # TAB 2: Settings
    # ---------------------------
    with tab_settings:
        st.caption("Output formats")
        make_png = st.checkbox("Also make PNG", value=False)
        make_pdf = st.checkbox("Also make PDF", value=True)
        make_book = st.checkbox("Combined puzzle book (puzzles.pdf)", value=True)

        st.caption("Solution marks")
        mark_style = st.radio("Style", ["highlight", "circle"], horizontal=True)

        st.caption("Preview")
        size_label = st.select_slider("Preview size", options=["Small", "Medium", "Large"], value="Medium")
        PREVIEW_W = {"Small": 420, "Medium": 560, "Large": 720}[size_label]



if go:
    # --- Import inside the button, so errors show on page ---
    try:
        import random
        import grid_engine as eng
        import word_source as ws
        import puzzle_assembler as asm
        import svg_renderer as svg
        import pdf_book
    except Exception as e:
        st.error("Failed to import the puzzle modules")
        st.exception(e)
        st.stop()

    log_lines: list[str] = []
    for mod in (eng, ws, svg, pdf_book):
        mod.set_logger(log_lines.append)

    try:
        with st.spinner(f"Asking the AI for {int(n_puzzles) * int(words_per_puzzle)} words..."):
            batch = asm.generate_puzzle_set(
                theme,
                int(n_puzzles),
                int(words_per_puzzle),
                template=template,
                rng=random.Random(seed or None),
            )
    except ws.ConfigurationError as e:
        st.error(f"Server configuration error: {e}")
        st.stop()
    except asm.NoWordsError as e:
        st.error(str(e))
        if e.warning:
            st.caption(e.warning)
        st.stop()
    except ValueError as e:
        st.error(str(e))
        st.stop()

    if batch.warning:
        st.warning(f"Warning: {batch.warning}")
    if batch.dropped_count:
        st.info(f"{batch.dropped_count} word(s) did not fit in their grid and were left out.")

    look = svg.Appearance(solution_mark_style=mark_style)
    svgs = []
    try:
        for puz in batch.puzzles:
            svgs.append((f"puzzle_{puz.id:03d}.svg", svg.render_puzzle_svg(puz, batch.theme, batch.template, look)))
            svgs.append((f"solution_{puz.id:03d}.svg", svg.render_solution_svg(puz, batch.theme, batch.template, look)))
    except Exception as e:
        st.error("Puzzle rendering failed")
        st.exception(e)
        st.stop()

    # --- Previews (tabs) ---
    tab_puz, tab_sol = st.tabs(["Preview — Puzzle", "Preview — Solution"])
    with tab_puz:
        svgp, hp = _scale_svg_for_preview(svgs[0][1], PREVIEW_W)
        st.components.v1.html(svgp, height=hp + 6, scrolling=False)
    with tab_sol:
        svgs_, hs = _scale_svg_for_preview(svgs[1][1], PREVIEW_W)
        st.components.v1.html(svgs_, height=hs + 6, scrolling=False)

    with st.expander("Words per puzzle"):
        for puz in batch.puzzles:
            st.write(f"**Puzzle {puz.id}:** {', '.join(puz.words)}")

    with st.expander("Answer keys (text)"):
        for puz in batch.puzzles:
            st.caption(f"Puzzle {puz.id}")
            st.code(eng.render_preview_ascii(puz.grid, puz.solution))

    with st.expander("Generation log"):
        st.code("\n".join(log_lines) or "(empty)")

    # --- ZIP outputs ---
    try:
        mem = io.BytesIO()
        with zipfile.ZipFile(mem, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, s in svgs:
                zf.writestr(name, s)

            if make_png or make_pdf:
                from cairosvg import svg2png, svg2pdf
                for name, s in svgs:
                    try:
                        if make_png:
                            zf.writestr(name.replace(".svg", ".png"),
                                        svg2png(bytestring=s.encode("utf-8")))
                    except Exception as e:
                        zf.writestr(name.replace(".svg", ".PNG_ERROR.txt"),
                                    (f"PNG conversion failed for {name}:\n{e}").encode("utf-8"))

                    try:
                        if make_pdf:
                            zf.writestr(name.replace(".svg", ".pdf"),
                                        svg2pdf(bytestring=s.encode("utf-8")))
                    except Exception as e:
                        zf.writestr(name.replace(".svg", ".PDF_ERROR.txt"),
                                    (f"PDF conversion failed for {name}:\n{e}").encode("utf-8"))

            if make_book:
                try:
                    zf.writestr("puzzles.pdf", pdf_book.build_puzzle_book(batch, appearance=look))
                except Exception as e:
                    zf.writestr("puzzles.PDF_ERROR.txt",
                                (f"Puzzle book failed:\n{e}").encode("utf-8"))

        mem.seek(0)
        slug = "-".join(batch.theme.lower().split())
        st.download_button("Download ZIP", data=mem.read(), file_name=f"word-search-{slug}.zip",
                           mime="application/zip")
    except Exception as e:
        st.error("Failed to package outputs")
        st.exception(e)
        st.stop()
