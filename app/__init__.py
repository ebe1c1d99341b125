"""LiveEdge: in-play football signal engine."""
