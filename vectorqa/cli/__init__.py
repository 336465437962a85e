"""Command-line tools for vectorqa.

- ``python -m vectorqa.cli add|ask|delete|collections`` -- manage and query
  the vector index (also installed as the ``vectorqa`` script).

Commands build their own clients rather than sharing the web app's
container, since each run is a one-shot process.
"""
