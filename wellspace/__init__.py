"""Wellspace API: moderated community forum and journal."""
