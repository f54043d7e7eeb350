"""Core engines: codec, key material, transforms and the live controller."""
