"""
Modules package for the Entity Consistency Engine.

Available modules:
- consistency: Scoring, drift detection and recommendations
- extractors: Content embedding extractors (OpenAI, fake)
- prompt_enhancer: Entity detection and prompt enhancement
- references: Reference embedding construction
- reporting: HTML analysis reports
"""
