# =============================================================================
# cancionero/cli/__main__.py — Package Entry Point
# =============================================================================
#
# Enables running the CLI package itself as a module:
#     python -m cancionero.cli
#
# Delegates to the catalog importer, the only CLI tool shipped today.
# =============================================================================

"""Allow ``python -m cancionero.cli`` execution."""

from cancionero.cli.import_catalog import main

main()
