"""
Command Line Interface Package

The ``expenses`` command.

Command Structure:
- expenses: Main entry point with utility commands (version, config, diagnose)
- expenses auth: Monzo authorization (url, exchange, status, disconnect, accounts)
- expenses sync: Run a sync pass and print the summary
- expenses explain: Per-rule classification report for live transactions
"""
