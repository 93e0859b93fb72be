"""
renderer.py — projects the ayahs of one page into display blocks.

The blocks are rendered either as terminal text or as an HTML fragment
(sura-header / basmala / ayah elements carrying data-sura / data-ayah).
"""
from dataclasses import dataclass
from html import escape

from config import BASMALA, SURAH_NO_BASMALA
from data import AyahRecord, QuranStore


@dataclass(frozen=True)
class SuraHeader:
    sura: int
    name: str


@dataclass(frozen=True)
class Basmala:
    text: str = BASMALA


@dataclass(frozen=True)
class LineBreak:
    pass


@dataclass(frozen=True)
class AyahSpan:
    ayah: AyahRecord


Block = SuraHeader | Basmala | LineBreak | AyahSpan


def render_page(store: QuranStore, page: int) -> list[Block]:
    """
    Build the blocks of *page*: a header for each sura shown, a Basmala for
    each sura that starts on the page (except At-Tawbah), and a line break
    wherever an ayah starts on a later line than the previous one ended.
    """
    ayahs = store.ayahs_on_page(page)
    starting_here = {a.sura_no for a in ayahs if a.aya_no == 1}

    blocks: list[Block] = []
    shown_headers: set[int] = set()
    previous: AyahRecord | None = None

    for ayah in ayahs:
        if ayah.sura_no not in shown_headers:
            shown_headers.add(ayah.sura_no)
            blocks.append(SuraHeader(ayah.sura_no, ayah.sura_name_ar))
            if ayah.sura_no in starting_here and ayah.sura_no != SURAH_NO_BASMALA:
                blocks.append(Basmala())

        if previous is not None and ayah.line_start > previous.line_end:
            blocks.append(LineBreak())

        blocks.append(AyahSpan(ayah))
        previous = ayah

    return blocks


def _is_active(ayah: AyahRecord, active: AyahRecord | None) -> bool:
    return active is not None and ayah.sura_no == active.sura_no and ayah.aya_no == active.aya_no


def format_blocks(blocks: list[Block], active: AyahRecord | None = None) -> str:
    """Plain-text rendering; the active ayah is wrapped in ⟦ ⟧."""
    lines: list[str] = []
    current: list[str] = []

    def flush():
        if current:
            lines.append(" ".join(current))
            current.clear()

    for block in blocks:
        if isinstance(block, SuraHeader):
            flush()
            lines.append(f"══ {block.name} ══")
        elif isinstance(block, Basmala):
            flush()
            lines.append(block.text)
        elif isinstance(block, LineBreak):
            flush()
        else:
            text = f"{block.ayah.aya_text} ({block.ayah.aya_no})"
            current.append(f"⟦{text}⟧" if _is_active(block.ayah, active) else text)
    flush()
    return "\n".join(lines)


def render_html(blocks: list[Block], active: AyahRecord | None = None, font_size: int = 28) -> str:
    parts = [f'<div id="quran-text" style="font-size:{int(font_size)}px">']
    for block in blocks:
        if isinstance(block, SuraHeader):
            parts.append(f'<div class="sura-header">{escape(block.name)}</div>')
        elif isinstance(block, Basmala):
            parts.append(f'<div class="basmala">{escape(block.text)}</div>')
        elif isinstance(block, LineBreak):
            parts.append("<br>")
        else:
            ayah = block.ayah
            cls = "ayah active" if _is_active(ayah, active) else "ayah"
            parts.append(
                f'<span class="{cls}" data-sura="{ayah.sura_no}" data-ayah="{ayah.aya_no}" '
                f'data-id="{ayah.id}">{escape(ayah.aya_text)} </span>'
            )
    parts.append("</div>")
    return "".join(parts)


def page_info(ayah: AyahRecord | None, page: int) -> str:
    """Header line: sura name, juz and page."""
    if ayah is None:
        return f"صفحة {page}"
    return f"{ayah.sura_name_ar} | الجزء {ayah.jozz} - صفحة {page}"
