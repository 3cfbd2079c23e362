"""Collaborators around the engine: discovery, processes, menu model."""
