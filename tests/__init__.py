# Tests Package
"""
Test suite for the Grafana extension.

- unit/: Component-level tests
- api/: HTTP surface tests
- integration/: End-to-end flows against a fake Grafana
"""
