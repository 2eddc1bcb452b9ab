"""Application services: patient intake and the real-time broadcast hub."""
