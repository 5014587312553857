"""
Dictation turn-detection service package.

Design intent:
- Host the turn detector core and its thin service surface.
- Keep speech heuristics (speech/) independent from engine supervision (internal_core/).
"""
