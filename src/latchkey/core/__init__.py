"""Core configuration and logging for Latchkey."""
