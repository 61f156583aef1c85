"""Real-time fan-out of board changes to connected clients."""
