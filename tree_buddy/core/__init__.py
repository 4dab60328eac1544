"""Orchestration layer."""

from .app_service import AppService, AppState, OperationState

__all__ = ["AppService", "AppState", "OperationState"]
