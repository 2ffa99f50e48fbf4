"""
Client adapters for external image generation services.
"""
from .base import ImageGenerator
from .gemini import GeminiImageClient, build_prompt

__all__ = ["ImageGenerator", "GeminiImageClient", "build_prompt"]
