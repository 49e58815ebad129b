"""Core orchestration package.

Architectural role:
    Exposes the orchestration layer that sits between API/CLI entrypoints and
    the modality adapters (`llm`, `image`, `audio`).

Composition:
    - `engine`: the `Orchestrator` (fan-out, merge, regenerate).
    - `outcomes`: adapter outcome variants and normalized result types.
    - `fallback`: deterministic substitutes for failed modalities.
    - `adapter`: adapter contract and transport-failure mapping.
    - `cancellation`: cancellation tokens and single-call deadlines.

Determinism and side effects:
    Package import itself is deterministic and side-effect free. Network side
    effects happen only inside adapter calls.
"""
