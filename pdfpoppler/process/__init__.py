"""Process environments, display wrapping, supervision and failure classification."""

from pdfpoppler.process.classifier import classify
from pdfpoppler.process.display import DisplayVirtualizationShim, displayRequired_check
from pdfpoppler.process.environment import ProcessEnvironmentBuilder
from pdfpoppler.process.lifecycle import ManagedProcess, ProcessLifecycleManager, ProcessStream

__all__ = [
    "DisplayVirtualizationShim",
    "ManagedProcess",
    "ProcessEnvironmentBuilder",
    "ProcessLifecycleManager",
    "ProcessStream",
    "classify",
    "displayRequired_check",
]
