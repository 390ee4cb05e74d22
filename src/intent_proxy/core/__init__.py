"""Core runtime: configuration, models, translation and execution."""
