"""Developer tooling helpers for idmask."""
