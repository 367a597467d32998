"""Core business logic for autosync, independent of the CLI."""
