"""Password hashing, one-time secrets and session tokens."""
