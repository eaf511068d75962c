"""Flask frontend for the translation helper."""
