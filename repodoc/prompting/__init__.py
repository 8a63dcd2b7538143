"""Prompt construction for the generation backend."""

from .builder import MonthGroup, PromptBuilder

__all__ = ["MonthGroup", "PromptBuilder"]
