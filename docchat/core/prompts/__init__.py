"""Prompt templates."""

from docchat.core.prompts.rag import PromptBuilder, get_rag_prompt, escape_xml, NO_INFORMATION_ANSWER

__all__ = ["PromptBuilder", "get_rag_prompt", "escape_xml", "NO_INFORMATION_ANSWER"]
