#!/usr/bin/env python
"""Utilitário de linha de comando do painel de multas."""
import os
import sys
from pathlib import Path

from config.env import load_dotenv_if_exists


def main():
    load_dotenv_if_exists(Path(__file__).resolve().parent)
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
    from django.core.management import execute_from_command_line

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
