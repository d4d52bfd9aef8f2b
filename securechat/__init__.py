"""Terminal two-party chat with signed Diffie-Hellman key exchange, AES-256-CTR and HMAC-SHA256."""

__version__ = "0.1.0"