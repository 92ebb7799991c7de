"""
Sync Package

Orchestrates a sync pass and wires its collaborators from configuration.
"""

from .factory import build_auth_manager, build_blob_store, build_monzo_client, build_orchestrator, build_token_vault
from .orchestrator import ResponseCache, SyncOrchestrator

__all__ = [
    "ResponseCache",
    "SyncOrchestrator",
    "build_auth_manager",
    "build_blob_store",
    "build_monzo_client",
    "build_orchestrator",
    "build_token_vault",
]
