"""Target catalog collaborators."""
