"""Application layer - ports, fetch coordination and use cases."""
