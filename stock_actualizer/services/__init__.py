"""Reconciliation services: matching, allocation and the pass orchestrator."""

from stock_actualizer.services.reconciler import PassReport, PassStage, Reconciler

__all__ = ["PassReport", "PassStage", "Reconciler"]
