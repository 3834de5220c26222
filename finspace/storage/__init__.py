"""Release discovery, placement and eviction."""
