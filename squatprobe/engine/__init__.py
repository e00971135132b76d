"""Verification engine: normalizer, DNS/TLS/HTTP probes, verifier and pool."""
