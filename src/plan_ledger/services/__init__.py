"""Application services and collaborator ports."""
