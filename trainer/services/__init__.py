"""Session-level services built on the agents."""
