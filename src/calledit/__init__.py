"""CALLED IT! backend API."""
