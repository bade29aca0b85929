"""AI image generation proxy.

Expands short user phrases into image prompts and turns prompts into images
through an immediate (synchronous) or deferred (submit-then-poll) provider,
behind one stable HTTP contract.
"""

__version__ = "0.1.0"
