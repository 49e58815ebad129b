"""Image generation adapter package.

Scope:
    Provides the text-to-image provider client and the `ImageAdapter` used by
    the orchestrator for hero images.

Non-goals:
    - No image storage or upload; base64 results are returned as data URLs.
    - No polling-based providers (each adapter call is one request).
"""
