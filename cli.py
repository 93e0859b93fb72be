#!/usr/bin/env python3
import asyncio
import json
import logging
from pathlib import Path

from config import FONT_SIZES, LANG, RECITERS, REPEAT_CHOICES, RIWAYAT
from database import init_db
from lang import resolve_lang, t
from nlu import parse_message
from playback import PlayMode, parse_repeat
from reader import Reader
from report import report_form
from search import search
from utils import safe_float, safe_int

logger = logging.getLogger(__name__)


# Navigation commands by the control they stand for
MOVES = {
    "prev_sura": "prevsura",
    "prev_page": "prevpage",
    "prev_ayah": "prev",
    "next_ayah": "next",
    "next_page": "nextpage",
    "next_sura": "nextsura",
}


def _print_page(reader: Reader) -> None:
    print()
    print(reader.page_text())
    states = reader.button_states()
    print(f"\n[{' | '.join(cmd for key, cmd in MOVES.items() if states.get(key))}]")


def _print_search(reader: Reader, query: str, lang: str) -> None:
    results = search(reader.store, query)
    if not results:
        print(t("no_results", lang))
        return
    for ayah in results[:10]:
        print(f"\n{ayah.sura_name_ar} {ayah.sura_no}:{ayah.aya_no} ({t('page', lang)} {ayah.first_page})")
        print(ayah.aya_text)


def _reciter_flow(reader: Reader, arg: str, lang: str) -> None:
    codes = list(RECITERS)
    if not arg:
        current = reader.settings.get("reciter")
        for i, code in enumerate(codes, 1):
            marker = "*" if code == current else " "
            print(f"{marker} {i}. {RECITERS[code].get(lang, code)} ({code})")
        return
    choice = safe_int(arg)
    code = codes[choice - 1] if choice and 1 <= choice <= len(codes) else arg
    if code not in RECITERS:
        print(t("unknown_reciter", lang))
        return
    reader.engine.change_reciter(code)
    print(t("reciter_set", lang, name=RECITERS[code].get(lang, code)))


def _speed_flow(reader: Reader, arg: str, lang: str) -> None:
    if arg in ("+", "-"):
        rate = reader.engine.change_speed(1 if arg == "+" else -1)
        if rate is None:
            return
    else:
        rate = safe_float(arg)
        if not rate or rate <= 0:
            print(t("error", lang))
            return
        reader.engine.set_speed(rate)
    print(t("speed_set", lang, speed=f"{rate:g}"))


def _repeat_flow(reader: Reader, key: str, arg: str, lang: str) -> None:
    count = safe_int(arg)
    if arg not in REPEAT_CHOICES and (count is None or count < 1):
        print(t("error", lang))
        return
    value = "infinite" if parse_repeat(arg) == float("inf") else str(parse_repeat(arg))
    reader.settings.set(key, value)
    print(t("repeat_set", lang, count=value))


def _follow_intent(reader: Reader, intent: dict, lang: str) -> None:
    kind = intent["type"]
    if kind == "page":
        reader.select_page(intent["page"])
    elif kind == "juz":
        reader.select_juz(intent["juz"])
    elif kind == "surah":
        reader.select_sura(intent["sura"])
    elif kind == "aya":
        reader.select_ayah(intent["aya"], sura=intent["sura"])
    else:
        _print_search(reader, intent["query"], lang)


def handle(reader: Reader, line: str, lang: str = LANG) -> bool:
    """Run one command line; returns False when the user quits."""
    line = line.strip()
    if not line:
        return True

    command, _, arg = line.partition(" ")
    command = command.lower()
    arg = arg.strip()

    if command in ("quit", "exit", "q"):
        return False
    elif command in ("help", "?"):
        print(t("menu", lang))
    elif command == "show":
        _print_page(reader)
    elif command == "play":
        reader.play()
    elif command in ("pause", "p"):
        reader.toggle_pause()
    elif command == "stop":
        reader.stop()
    elif command in ("next", "n"):
        reader.next_ayah()
    elif command in ("prev", "b"):
        reader.previous_ayah()
    elif command == "nextsura":
        reader.next_sura()
    elif command == "prevsura":
        reader.previous_sura()
    elif command == "nextpage":
        reader.next_page()
    elif command == "prevpage":
        reader.previous_page()
    elif command == "page" and safe_int(arg):
        reader.select_page(safe_int(arg))
    elif command == "sura" and safe_int(arg):
        reader.select_sura(safe_int(arg))
    elif command == "juz" and safe_int(arg):
        reader.select_juz(safe_int(arg))
    elif command == "ayah" and safe_int(arg):
        reader.select_ayah(safe_int(arg))
    elif command == "reciter":
        _reciter_flow(reader, arg, lang)
    elif command == "speed":
        _speed_flow(reader, arg, lang)
    elif command == "repeat":
        _repeat_flow(reader, "repeat", arg, lang)
    elif command == "qrepeat":
        _repeat_flow(reader, "playModeRepeat", arg, lang)
    elif command == "mode":
        if arg not in {m.value for m in PlayMode} and arg != "single-ayah":
            print(t("error", lang))
        else:
            reader.settings.set("playMode", PlayMode.parse(arg).value)
            print(t("mode_set", lang, mode=PlayMode.parse(arg).value))
    elif command == "font":
        size = safe_int(arg)
        if size not in FONT_SIZES:
            print(t("error", lang))
        else:
            reader.settings.set("fontSize", size)
    elif command == "riwaya":
        if arg not in RIWAYAT:
            print(", ".join(RIWAYAT))
        else:
            reader.settings.set("riwaya", arg)
    elif command == "search":
        _print_search(reader, arg, lang)
    elif command == "html":
        path = Path(arg or "page.html")
        path.write_text(reader.page_html(), encoding="utf-8")
        print(t("saved", lang, path=path))
    elif command == "report":
        form = report_form(reader.store, reader.state, reader.settings, lang, page=safe_int(arg))
        print(json.dumps(form, ensure_ascii=False, indent=2))
    else:
        _follow_intent(reader, parse_message(line, reader.store), lang)
    return True


async def run(reader: Reader, lang: str = LANG) -> None:
    loop = asyncio.get_running_loop()
    print(t("welcome", lang))
    print(t("menu", lang))
    if not reader.store.is_empty:
        _print_page(reader)

    while True:
        try:
            line = await loop.run_in_executor(None, input, "\n> ")
        except (EOFError, KeyboardInterrupt):
            break
        if not handle(reader, line, lang):
            break

    reader.stop()


def main():
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.WARNING,
    )
    init_db()
    lang = resolve_lang(LANG)

    reader = Reader.from_config(notify=lambda key: print(t(key, lang)))
    reader.on_page_rendered = lambda _blocks: _print_page(reader)

    try:
        asyncio.run(run(reader, lang))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
