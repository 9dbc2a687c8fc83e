"""Long-running services: price cache and intent event sources."""
