"""contentgen API adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and CLI interfaces.
- Performs transport-level validation and response shaping.
- Delegates generation and fallback handling to the core layer.

Scope:
- Request lifecycle control for adapter concerns only.
- No direct provider invocation logic is implemented in this package.
"""
