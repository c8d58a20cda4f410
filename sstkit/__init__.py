"""Session-key helpers: configuration, AES-GCM framing, key slots, a key-update receiver and IPFS requests."""

__version__ = "1.0.0"