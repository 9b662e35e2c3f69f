"""Infrastructure layer: adapters for the external collaborators."""
