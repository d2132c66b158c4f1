"""Discord cogs - command handlers."""

from discodj.infrastructure.discord.cogs.music_cog import MusicCog

__all__ = ["MusicCog"]
