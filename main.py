"""Entrypoint: call AI providers from the command line."""

from __future__ import annotations

from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from ai_assistant.cli import main


if __name__ == "__main__":
    sys.exit(main())
