"""
Prompt Enhancer: entity detection and attribute injection.

Detects entity names mentioned in a generation prompt and injects each
entity's key attributes next to its name, so the generator is reminded
of what the entity looks like.
"""

import logging
import re
from typing import Iterable, Sequence

from consistency_engine.core.interfaces import EntityRecord
from consistency_engine.modules.prompt_enhancer.models import EnhancedPrompt

logger = logging.getLogger(__name__)

SENTENCE_SPLIT = re.compile(r"[.!?]+")
MAX_ATTRIBUTES = 3

CONSISTENCY_CONSTRAINTS = (
    "IMPORTANT: maintain exact visual consistency, follow reference images "
    "precisely, preserve all key attributes"
)


def _name_pattern(name: str) -> re.Pattern:
    return re.compile(rf"\b({re.escape(name)})\b", re.IGNORECASE)


def detect_entity_names(prompt: str, entities: Iterable[EntityRecord]) -> list[str]:
    """Return the names of entities mentioned in the prompt.

    Matching is case-insensitive on whole words.
    """
    return [
        entity.name for entity in entities
        if _name_pattern(entity.name).search(prompt)
    ]


def extract_top_attributes(description: str) -> list[str]:
    """Pick up to three key attributes from an entity description.

    The first three sentences are used. With fewer than three sentences,
    the first sentence is split on commas instead.

    Example:
        >>> extract_top_attributes("Tall, red cloak, green eyes. Brave.")
        ['Tall', 'red cloak', 'green eyes']
    """
    sentences = [s.strip() for s in SENTENCE_SPLIT.split(description or "")]
    sentences = [s for s in sentences if s]

    if 0 < len(sentences) < MAX_ATTRIBUTES:
        phrases = [p.strip() for p in sentences[0].split(",")]
        return [p for p in phrases if p][:MAX_ATTRIBUTES]

    return sentences[:MAX_ATTRIBUTES]


def enhance_prompt(
    prompt: str,
    entities: Sequence[EntityRecord],
    manual_entity_ids: Sequence[str] | None = None,
) -> EnhancedPrompt:
    """Inject entity attributes into a prompt.

    Args:
        prompt: The user's prompt.
        entities: Candidate entities.
        manual_entity_ids: When given, exactly these entities are used;
            otherwise the non-archived entities named in the prompt.

    Returns:
        EnhancedPrompt with the original and enhanced text.
    """
    if manual_entity_ids:
        wanted = set(manual_entity_ids)
        relevant = [e for e in entities if e.id in wanted]
    else:
        candidates = [e for e in entities if not e.is_archived]
        detected = set(detect_entity_names(prompt, candidates))
        relevant = [e for e in candidates if e.name in detected]

    if not relevant:
        return EnhancedPrompt(original_prompt=prompt, enhanced_prompt=prompt)

    enhanced = prompt
    for entity in relevant:
        attributes = extract_top_attributes(entity.description)
        if not attributes:
            continue
        attribute_string = ", ".join(attributes)
        enhanced = _name_pattern(entity.name).sub(
            lambda m: f"{m.group(1)} ({attribute_string})", enhanced
        )

    logger.debug("Enhanced prompt with %d entities", len(relevant))
    return EnhancedPrompt(
        original_prompt=prompt,
        enhanced_prompt=enhanced,
        detected_entity_ids=[e.id for e in relevant],
    )


def add_consistency_constraints(
    prompt: str,
    additional_constraints: str | None = None,
) -> str:
    """Append strict consistency instructions for a regeneration.

    Example:
        >>> add_consistency_constraints("A knight")
        'A knight. IMPORTANT: maintain exact visual consistency, follow reference images precisely, preserve all key attributes.'
    """
    constraints = CONSISTENCY_CONSTRAINTS
    if additional_constraints and additional_constraints.strip():
        constraints = f"{constraints}, {additional_constraints.strip()}"
    return f"{prompt}. {constraints}."
