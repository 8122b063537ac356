"""Test suite for the Pop Up Archive SDK.

Test Structure:
- unit/api/http/: request pipeline, OAuth2 token manager, utilities
- unit/api/archive/: resource operations
- unit/config/: configuration loading
- unit/utils/: logging configuration
- unit/cli/: command-line interface
- conftest.py: Shared fixtures
"""
