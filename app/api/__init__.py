"""HTTP API for LiveEdge."""
