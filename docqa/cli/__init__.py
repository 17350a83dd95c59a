"""Command-line tools for docqa.

- ``python -m docqa.cli`` — ingest PDFs, list and delete documents, and ask
  questions (single-shot or interactive) against the local database.
"""
