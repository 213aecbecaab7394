"""Chat domain: messages, typed content and read positions."""
