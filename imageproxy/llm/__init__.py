"""LLM access package.

Module split:
    - `service`: prompt-expansion payload construction.
    - `client`: chat-completion HTTP transport and response parsing.
"""
