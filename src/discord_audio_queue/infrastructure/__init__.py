"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Audio (resolution strategies and the fallback chain)
- Discord (bot, cogs, views, voice transport)
"""
