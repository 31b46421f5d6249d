"""HTTP API for world generation and simulation sessions."""
