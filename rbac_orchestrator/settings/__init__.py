"""Offer the configuration of the orchestrator."""

from rbac_orchestrator.settings.base_settings import OrchestratorSettings

__all__ = ["OrchestratorSettings"]
