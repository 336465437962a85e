"""Allow ``python -m vectorqa.cli`` execution."""

from vectorqa.cli.ingest import main

main()
