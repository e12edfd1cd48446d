"""Spaced-repetition flashcard practice sessions."""
