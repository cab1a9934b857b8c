"""Liar's Mastermind: code-breaking against a scorekeeper that sometimes lies."""

__version__ = "0.1.0"
