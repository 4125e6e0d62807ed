"""Context and memory aggregation for personality bots."""
