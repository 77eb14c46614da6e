"""Application layer: use cases, errors and outbound clients."""
