"""Engine services for LiveEdge."""
