"""Audio infrastructure: yt-dlp and Spotify lookups, FFmpeg sources."""
