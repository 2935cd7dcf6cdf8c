"""auditor.dashboard — HTTP query service and bundled static page."""
