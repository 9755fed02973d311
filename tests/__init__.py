"""VibePMCP tests.

The backend is faked in-process with ``httpx.MockTransport`` (see
``tests/helpers.py``); the HTTP surface is driven through
``httpx.ASGITransport``. No network access is needed.

Usage:
    pytest tests/ -v
    pytest tests/test_adapter.py -v
    pytest tests/ -k "registry" -v
"""
