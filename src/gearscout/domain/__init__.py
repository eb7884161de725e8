"""Domain layer: pure matching, pricing and catalog maintenance logic."""
