"""Core engine: requirement model, source indexes, resolver, and lockfile codec."""
