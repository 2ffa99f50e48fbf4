"""
Virtual try-on toolkit: image normalization and generation orchestration.
"""
from .config import load_config
from .normalizer import normalize
from .orchestrator import GenerationOrchestrator
from .types import NormalizedImage, WorkflowPhase, WorkflowState

__all__ = [
    "load_config",
    "normalize",
    "GenerationOrchestrator",
    "NormalizedImage",
    "WorkflowPhase",
    "WorkflowState",
]
