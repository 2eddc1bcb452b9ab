"""HTTP and WebSocket API for Intake-Hub."""
