"""Shared primitives: errors, ids, clocks, configuration, collaborator models."""
