"""Domain models, validation helpers and error kinds."""
