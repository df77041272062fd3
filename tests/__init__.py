"""
Helpdesk Test Suite
===================

Test organization:
- tests/unit/               - Shared library tests (auth)
- tests/services/helpdesk/  - Domain, services, API and SQL repository tests

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest tests/services/helpdesk  # Helpdesk service only
"""
