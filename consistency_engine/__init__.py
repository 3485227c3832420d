"""
Entity Consistency Engine

Scores how faithfully AI-generated content preserves the visual and
semantic attributes of the entities it was generated with.
"""

__version__ = "1.0.0"
