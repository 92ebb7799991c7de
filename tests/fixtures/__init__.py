"""
Test Fixtures

Synthetic Monzo payloads, expenses and baseline exports, plus an in-memory
Monzo API for exercising the httpx clients.
"""
