"""HTTP API for NoteBuddy."""
