"""Image generation provider package.

Scope:
    - `cascade`: ranked-endpoint fallback for the immediate provider.
    - `jobs`: submit/poll state machine for the deferred provider.
    - `service`: provider selection and dispatch.
"""
