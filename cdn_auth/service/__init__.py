"""Use-cases built on the pure domain layer: settings, URL signing, collaborator API."""
