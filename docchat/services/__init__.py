"""Engine services: caches, cache events and chat."""
