# =============================================================================
# src/cli/__main__.py - Package Entry Point
# =============================================================================
#
# Enables `python -m src.cli`, which runs the browse command:
#     python -m src.cli video --filter bucket=accolades
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

from src.cli.browse import main

main()
