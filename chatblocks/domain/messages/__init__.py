"""Domain message models."""
