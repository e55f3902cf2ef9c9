"""
Test Suite

Structure:
    tests/
    ├── __init__.py                  # This file
    ├── conftest.py                  # Fake collections and fixtures
    ├── test_workflow_engine.py      # State machine decisions
    ├── test_workflow_definition.py  # Table validation and the validate script
    ├── test_audit_recorder.py       # Audit writes, queries and stats
    ├── test_job_order_service.py    # Status change orchestration
    └── test_api.py                  # HTTP routes

To run tests:
    pytest backend/tests
"""
