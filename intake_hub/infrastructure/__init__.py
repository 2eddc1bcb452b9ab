"""Infrastructure layer: configuration, settings and the error log."""
