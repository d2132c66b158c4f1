"""Discord adapters: bot, cogs, views, guards and display services."""
