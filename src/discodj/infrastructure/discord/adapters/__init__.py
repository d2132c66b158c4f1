"""Adapters bridging discord.py objects to the application ports."""
