"""Transport adapters.

Architectural role:
- Receive requests over HTTP (FastAPI), as function calls, or from the CLI.
- Delegate all validation and provider work to `imageproxy.core.orchestrator`.
"""
