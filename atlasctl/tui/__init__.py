"""Textual front end for picking and serving projects."""
