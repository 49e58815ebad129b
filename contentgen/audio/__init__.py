"""Narration (text-to-speech) adapter package.

Scope:
    Provides hosted TTS provider clients and the `AudioAdapter` used by the
    orchestrator. When no provider can be used, the fallback resolver returns a
    marker telling the client to synthesize speech in the browser.

Non-goals:
    - No audio storage or upload; audio bytes are returned as data URLs.
    - No local speech synthesis.
"""
