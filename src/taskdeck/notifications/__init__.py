"""Local reminder delivery."""
