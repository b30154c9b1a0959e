"""Issue tracker connectors."""
