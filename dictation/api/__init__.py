"""
HTTP/WebSocket surface for the dictation service.

Design intent:
- Keep handlers thin; turn-taking decisions live in the detector.
"""
