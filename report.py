"""
report.py — values for prefilling the external error-report form.

Only the current position and recitation style are exposed; submitting
the report is handled elsewhere.
"""
from config import RIWAYAT
from data import QuranStore


def pages_for_sura(store: QuranStore, sura: int) -> list[int]:
    return store.pages_for_sura(sura)


def ayahs_for_sura_on_page(store: QuranStore, sura: int, page: int) -> list[int]:
    """Ayah numbers of *sura* on *page*; all of the sura's ayahs if none are."""
    ayahs = sorted(a.aya_no for a in store.ayahs_on_page(page) if a.sura_no == sura)
    return ayahs or [a.aya_no for a in store.ayahs_in_sura(sura)]


def first_sura_on_page(store: QuranStore, page: int) -> int | None:
    ayahs = store.ayahs_on_page(page)
    return ayahs[0].sura_no if ayahs else None


def report_prefill(state, settings, lang: str = "ar") -> dict:
    """Current sura/page/ayah and the active riwaya label."""
    riwaya = settings.get("riwaya")
    label = RIWAYAT.get(riwaya, {}).get(lang, riwaya) if riwaya else None
    ayah = state.current_ayah
    return {
        "sura": state.current_sura,
        "page": state.current_page,
        "aya": ayah.aya_no if ayah else None,
        "riwaya": riwaya,
        "riwaya_label": label,
    }


def report_form(store: QuranStore, state, settings, lang: str = "ar", page: int | None = None) -> dict:
    """
    Prefill plus the page and ayah choices for the chosen sura.

    Picking another *page* keeps the current sura when it is on that page,
    otherwise switches to the first sura of the page and its first ayah.
    """
    form = report_prefill(state, settings, lang)
    if page is not None and page != form["page"]:
        on_page = any(a.sura_no == form["sura"] for a in store.ayahs_on_page(page))
        form["sura"] = form["sura"] if on_page else first_sura_on_page(store, page)
        form["page"] = page
        form["aya"] = None

    sura = form["sura"]
    form["pages"] = pages_for_sura(store, sura) if sura else []
    form["ayahs"] = ayahs_for_sura_on_page(store, sura, form["page"]) if sura else []
    if form["aya"] is None and form["ayahs"]:
        form["aya"] = form["ayahs"][0]
    return form
