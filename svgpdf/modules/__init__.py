"""Feature modules. Each exposes a FastAPI ``router``."""
