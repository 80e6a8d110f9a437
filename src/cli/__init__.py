"""Command-line tools for the discovery engine.

- ``python -m src.cli.browse`` - print one filtered, faceted page of a
  resource kind, or every matching item with ``--all``.
"""
