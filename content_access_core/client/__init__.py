"""Client side of the attachment transfer protocol."""

from .transfer_orchestrator import TransferOrchestrator

__all__ = ["TransferOrchestrator"]
