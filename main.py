#!/usr/bin/env python3
import sys


USAGE = """Mushaf Reader - read the Quran page by page and listen ayah by ayah

Usage:
  python main.py cli        - Start the terminal reader
  python main.py reset      - Forget saved preferences and reading position"""


def main():
    command = sys.argv[1] if len(sys.argv) > 1 else None
    if command == "cli":
        from cli import main as cli_main
        cli_main()
    elif command == "reset":
        from database import init_db
        from settings import Settings
        init_db()
        Settings().reset()
        print("Settings cleared")
    else:
        print(USAGE)


if __name__ == "__main__":
    main()
