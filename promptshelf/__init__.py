"""
PromptShelf

Personal library for generative-AI prompts: versioned text, templates,
test runs and evaluations.
"""

__version__ = "0.1.0"
