"""
Speech module boundary for the dictation service.

Design intent:
- Centralize transcript accumulation and end-of-thought heuristics.
- Stay free of timers and engine lifecycle so every rule is testable as a pure unit.
"""
