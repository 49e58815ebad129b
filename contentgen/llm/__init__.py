"""Text generation (LLM) package.

Architectural role:
    Provides provider configuration, the chat transport, and the text adapter
    used by the orchestrator to produce headlines and captions.

Module split:
    - `provider_config`: environment-driven provider, model and key configuration
      for all modalities.
    - `service`: `TextAdapter` and headline/caption parsing.
    - `client`: provider-specific HTTP transport.
"""
