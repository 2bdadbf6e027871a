"""Hub services: editor registry, activation tracking and their collaborators."""
