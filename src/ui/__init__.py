"""User interaction capabilities."""

from .prompt import InteractivePrompt, NonInteractivePrompt, Prompt

__all__ = ["InteractivePrompt", "NonInteractivePrompt", "Prompt"]
