"""Discord integration: bot, cogs, views and the voice transport adapter."""
