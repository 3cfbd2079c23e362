"""atlasctl — pick a project file and run `atlas serve` for it."""

__version__ = "0.3.0"
