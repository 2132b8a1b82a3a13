"""Terminal views over the run ledger."""

from shipwright.monitor.renderer import RunRenderer

__all__ = ["RunRenderer"]
