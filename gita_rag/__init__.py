"""Retrieval-augmented question answering over the Bhagavad Gita."""
