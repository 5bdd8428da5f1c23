"""Tests for Cert Migration.

Test Structure:
    tests/
    ├── conftest.py              # Shared pytest fixtures (scenario data)
    ├── mocks/                   # In-memory collaborators, certificate factories
    ├── test_crypto.py
    ├── test_selection.py
    ├── test_builder.py
    ├── test_importer.py
    ├── test_certificates.py
    ├── test_serialization.py
    ├── test_key_rotation.py
    ├── test_config.py
    ├── test_models.py
    └── test_manager.py

Usage:
    # Run all tests
    pytest

    # Run with verbose output
    pytest -v
"""
