# =============================================================================
# cancionero/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# Command-line tools for operators running a karaoke night.  Each submodule
# is a self-contained utility that can be run with
# `python -m cancionero.cli.<module>`.
#
#   IMPORT (import_catalog.py)
#      Loads the song catalog from a spreadsheet CSV export into MongoDB.
#      Handles Excel quirks (BOMs, UTF-16, Windows-1252, "sep=" lines,
#      semicolon delimiters) and upserts by normalized (artist, title)
#      so re-running it is safe.
#
# The web server never imports this package.
# =============================================================================
