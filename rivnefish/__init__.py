"""Client and rendering helpers for the rivnefish.com catalog API."""
