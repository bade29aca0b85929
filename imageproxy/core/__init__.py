"""Core orchestration package.

Composition:
    - `types`: Value types shared across layers.
    - `errors`: Upstream error normalization and the client-facing error kinds.
    - `orchestrator`: Validation, provider dispatch and response rendering used
      by every transport adapter.
"""
