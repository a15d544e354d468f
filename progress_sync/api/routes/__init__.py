"""Route modules for the public HTTP surface."""
