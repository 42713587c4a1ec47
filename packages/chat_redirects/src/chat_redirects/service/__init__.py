"""
Redirect Service Layer

Orchestrator for operator actions and the reconciler for scheduled windows.
"""

from chat_redirects.service.orchestrator import RedirectOrchestrator
from chat_redirects.service.reconciler import CycleResult, RedirectReconciler

__all__ = [
    "CycleResult",
    "RedirectOrchestrator",
    "RedirectReconciler",
]
