"""
Test Suite for the Expense Dashboard

Test Structure:
- fixtures/: Synthetic data builders and the fake Monzo API
- unit/: Unit tests mirroring the src/ package structure
- integration/: CLI and end-to-end sync tests

All merchants, accounts, tokens and amounts are synthetic.
"""
