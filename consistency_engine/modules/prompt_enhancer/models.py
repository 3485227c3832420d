"""
Pydantic models for the Prompt Enhancer module.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EnhancedPrompt(BaseModel):
    """A prompt with entity attributes injected.

    Attributes:
        original_prompt: Prompt as typed by the user.
        enhanced_prompt: Prompt with ``Name (attr, attr, attr)`` injections.
        detected_entity_ids: Entities used for the enhancement, in order.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    original_prompt: str
    enhanced_prompt: str
    detected_entity_ids: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether any attribute was injected."""
        return self.enhanced_prompt != self.original_prompt

    def to_api(self) -> dict:
        """Serialize with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
