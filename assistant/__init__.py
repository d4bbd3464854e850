"""Island guide assistant backed by Gemini."""
