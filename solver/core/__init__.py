"""Solving engine: chain boundary, claims, settlement, nonce sequencing and the fill pipeline."""
