"""
auditor test suite.

Tests are organized by layer:
    tests/unit/         Unit tests (parser, ranker, store, ingestion with fakes)
    tests/dashboard/    HTTP query service (FastAPI TestClient)
    tests/integration/  CLI and ingestion against real files and SQLite

Run all tests:
    pytest

Run unit tests only:
    pytest tests/unit/
"""
