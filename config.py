import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("QURAN_DATA_DIR", BASE_DIR / "data"))

QURAN_DATA_FILE = Path(
    os.getenv("QURAN_DATA_FILE", DATA_DIR / "text" / "UthmanicWarsh" / "warshData_v2-1.json")
)
AUDIO_URLS_FILE = Path(os.getenv("QURAN_AUDIO_URLS_FILE", DATA_DIR / "text" / "quran_audio_urls.json"))

# Either a directory or an http(s) base URL serving {reciter}/{sura}/{aya}.mp3
LOCAL_AUDIO_ROOT = os.getenv("QURAN_AUDIO_ROOT", str(DATA_DIR / "audio"))

DB_URL = os.getenv("QURAN_DB_URL", f"sqlite:///{DATA_DIR / 'reader.db'}")

LANG = os.getenv("QURAN_LANG", "ar")

PROBE_TIMEOUT = 5
FFPLAY_BIN = os.getenv("FFPLAY_BIN", "ffplay")

TOTAL_PAGES = 604
TOTAL_SURAS = 114
TOTAL_JUZ   = 30

SURAH_NO_BASMALA = 9  # At-Tawbah
BASMALA = "بِسْمِ ٱللَّهِ ٱلرَّحْمَٰنِ ٱلرَّحِيمِ"

DEFAULT_RECITER = "abdelbasset_abdessamad"

# Reciter directories with localized names
RECITERS = {
    "abdelbasset_abdessamad": {"ar": "عبد الباسط عبد الصمد", "en": "Abdul Basit Abdus-Samad"},
    "al_husary": {"ar": "محمود خليل الحصري", "en": "Mahmoud Khalil Al-Husary"},
    "ibrahim_aldosary": {"ar": "إبراهيم الدوسري", "en": "Ibrahim Al-Dosary"},
    "yassine_aljazairi": {"ar": "ياسين الجزائري", "en": "Yassine Al-Jazairi"},
    "abdelrashid_sufi": {"ar": "عبد الرشيد صوفي", "en": "Abdul Rashid Sufi"},
    "alqaria_yassen": {"ar": "القارئ ياسين", "en": "Al-Qaria Yassen"},
}

SPEEDS = [0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0]
REPEAT_CHOICES = ["1", "2", "3", "5", "10", "infinite"]
FONT_SIZES = [20, 24, 28, 32, 36, 40]

RIWAYAT = {
    "warsh": {"ar": "ورش عن نافع", "en": "Warsh an Nafi"},
    "qalun": {"ar": "قالون عن نافع", "en": "Qalun an Nafi"},
    "hafs": {"ar": "حفص عن عاصم", "en": "Hafs an Asim"},
}
DEFAULT_RIWAYA = "warsh"
