"""Infrastructure layer: yt-dlp/Spotify/FFmpeg audio, Discord adapters and JSON persistence."""
