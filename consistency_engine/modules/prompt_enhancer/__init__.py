"""
Prompt Enhancer module.

Injects entity attributes into generation prompts and builds
regeneration prompts with strict consistency constraints.
"""

from consistency_engine.modules.prompt_enhancer.logic import (
    add_consistency_constraints,
    detect_entity_names,
    enhance_prompt,
    extract_top_attributes,
)
from consistency_engine.modules.prompt_enhancer.models import EnhancedPrompt

__all__ = [
    "EnhancedPrompt",
    "add_consistency_constraints",
    "detect_entity_names",
    "enhance_prompt",
    "extract_top_attributes",
]
